"""Business logic services used by HTTP controllers.

`CrudService` is the generic engine: given an entity descriptor it
validates input, builds filtered/sorted/paginated queries and applies
partial updates and soft deletes. Entity extras (profile singleton,
project images, skill statistics, the contact state machine) are small
subclasses or companions composed on top of it. Services raise the
domain errors from `errors.py`; controllers never see raw exceptions.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Literal, Optional, Sequence, get_args, get_origin

import jwt
from passlib.context import CryptContext
from sqlalchemy import JSON, Boolean, Integer, func, or_, select
from sqlmodel import Session

from . import entities, models, repositories
from .errors import DeliveryFailed, InvalidTransition, NotFound, ValidationFailed
from .schemas import (
    CONTACT_STATUSES,
    ContactStatusIn,
    ReplyIn,
    supplied_fields,
    validate_payload,
)
from .utils.mailer import confirmation_email, notification_email, reply_email

logger = logging.getLogger("portfolio_api.services")

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AuthService:
    """Admin account operations (create + authenticate)."""
    def __init__(self, session: Session, settings):
        self.session = session
        self.settings = settings
        self.user_repo = repositories.AdminUserRepository(session)

    def register(self, username: str, password: str) -> models.AdminUser:
        """Create a new admin with a hashed password."""
        hashed = PWD_CTX.hash(password)
        return self.user_repo.create(models.AdminUser(username=username, password_hash=hashed))

    def ensure_admin(self, username: str, password: str) -> models.AdminUser:
        """Return the admin named `username`, creating it on first use."""
        existing = self.user_repo.get_by_username(username)
        if existing:
            return existing
        logger.info("admin_seeded username=%s", username)
        return self.register(username, password)

    def authenticate(self, username: str, password: str) -> Optional[str]:
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=self.settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        return jwt.encode(payload, self.settings.JWT_SECRET, algorithm=self.settings.JWT_ALGORITHM)


@dataclass
class ListQuery:
    """Parameters of a list request, already split out of the query string."""
    page: int = 1
    limit: Optional[int] = None
    sort: Optional[str] = None
    search: Optional[str] = None
    filters: dict = field(default_factory=dict)
    include_inactive: bool = False


@dataclass
class Page:
    items: list
    pagination: dict


def pagination_meta(page: int, limit: int, total: int, count_key: str) -> dict:
    total_pages = math.ceil(total / limit) if total else 0
    return {
        "currentPage": page,
        "limit": limit,
        "totalPages": total_pages,
        "totalCount": total,
        count_key: total,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


def serialize(descriptor, record, exclude: Sequence[str] = ()) -> dict:
    """Render a table row through the entity's read schema (camelCase keys)."""
    model = descriptor.read_schema.model_validate(record)
    return model.model_dump(mode="json", by_alias=True, exclude=set(exclude))


_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _literal_choices(annotation) -> tuple:
    """Allowed values of a `Literal` (or `Optional[Literal]`) annotation."""
    if get_origin(annotation) is Literal:
        return get_args(annotation)
    choices = ()
    for arg in get_args(annotation):
        choices += _literal_choices(arg)
    return choices


class CrudService:
    """Generic list/get/create/update/soft-delete over one entity."""
    def __init__(self, session: Session, descriptor: entities.EntityDescriptor, repo=None):
        self.session = session
        self.descriptor = descriptor
        self.model = descriptor.model
        self.repo = repo or repositories.RecordRepository(session, descriptor.model)

    # query building

    def _column(self, attr: str):
        return getattr(self.model, attr)

    def _choices(self, attr: str) -> tuple:
        if attr in self.descriptor.filter_choices:
            return tuple(self.descriptor.filter_choices[attr])
        info = self.descriptor.create_schema.model_fields.get(attr)
        return _literal_choices(info.annotation) if info is not None else ()

    def _coerce(self, name: str, attr: str, raw, violations: List[dict]):
        col_type = self.model.__table__.columns[attr].type
        if isinstance(col_type, Boolean):
            if isinstance(raw, bool):
                return raw
            text = str(raw).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            violations.append({"field": name, "message": f"{name} must be true or false"})
            return None
        if isinstance(col_type, Integer):
            try:
                return int(raw)
            except (TypeError, ValueError):
                violations.append({"field": name, "message": f"{name} must be an integer"})
                return None
        choices = self._choices(attr)
        if choices and raw not in choices:
            violations.append({"field": name, "message": f"{name} must be one of: {', '.join(choices)}"})
            return None
        return raw

    def _json_elements(self, col):
        """Table of the text elements of a JSON array column, correlated to the row."""
        if self.session.get_bind().dialect.name == "postgresql":
            return func.json_array_elements_text(col).table_valued("value").alias()
        return func.json_each(col).table_valued("value").alias()

    def _search_clause(self, term: str):
        """Case-insensitive substring match on any search field.

        JSON list columns match element by element, never on their
        serialized text.
        """
        pattern = f"%{_escape_like(term)}%"
        parts = []
        for attr in self.descriptor.search_fields:
            col = self._column(attr)
            if isinstance(self.model.__table__.columns[attr].type, JSON):
                elements = self._json_elements(col)
                value = elements.c.value
                parts.append(select(value).where(value.ilike(pattern, escape="\\")).exists())
            else:
                parts.append(col.ilike(pattern, escape="\\"))
        return or_(*parts)

    def _order_by(self, sort: str, violations: List[dict]) -> list:
        order, used = [], set()
        for key in (part.strip() for part in sort.split(",")):
            if not key:
                continue
            descending = key.startswith("-")
            name = key.lstrip("-+")
            attr = self.descriptor.sort_fields.get(name)
            if attr is None:
                violations.append({"field": "sort", "message": f"unsupported sort key '{name}'"})
                continue
            col = self._column(attr)
            order.append(col.desc() if descending else col.asc())
            used.add(attr)
        # stable ordering: ties fall back to display order, then id
        for attr in ("display_order", "id"):
            if attr not in used:
                order.append(self._column(attr).asc())
        return order

    def _visibility(self, privileged: bool, include_inactive: bool) -> list:
        if privileged and include_inactive:
            return []
        return [self.model.is_active == True]  # noqa: E712

    def list(self, query: ListQuery, privileged: bool = False) -> Page:
        d = self.descriptor
        violations: List[dict] = []
        limit = d.default_limit if query.limit is None else query.limit
        if query.page < 1:
            violations.append({"field": "page", "message": "page must be at least 1"})
        if limit < 1 or limit > d.max_limit:
            violations.append({"field": "limit", "message": f"limit must be between 1 and {d.max_limit}"})

        clauses = self._visibility(privileged, query.include_inactive)
        filters = dict(d.default_filters)
        for name, raw in query.filters.items():
            attr = d.filter_fields.get(name)
            if attr is None:
                violations.append({"field": name, "message": f"unsupported filter '{name}'"})
                continue
            filters[attr] = self._coerce(name, attr, raw, violations)
        clauses.extend(self._column(attr) == value for attr, value in filters.items())

        term = (query.search or "").strip()
        if term and d.search_fields:
            clauses.append(self._search_clause(term))
        order_by = self._order_by(query.sort or d.default_sort, violations)
        if violations:
            raise ValidationFailed(violations)

        total = self.repo.count(clauses)
        items = self.repo.find(clauses, order_by, offset=(query.page - 1) * limit, limit=limit)
        return Page(items=items, pagination=pagination_meta(query.page, limit, total, d.count_key))

    # single-record operations

    def get(self, record_id: str, privileged: bool = False):
        record = self.repo.get(record_id)
        if record is None or (not record.is_active and not privileged):
            raise NotFound(self.descriptor.not_found_message)
        return record

    def _values(self, validated, include: Optional[set] = None) -> dict:
        """Column values for a validated input model; JSON columns get JSON-safe data."""
        values = validated.model_dump(include=include)
        json_values = validated.model_dump(mode="json", include=include)
        for column in self.model.__table__.columns:
            if isinstance(column.type, JSON) and column.name in values:
                values[column.name] = json_values[column.name]
        return values

    def create(self, payload, **extra):
        validated, violations = validate_payload(self.descriptor.create_schema, payload)
        if violations:
            raise ValidationFailed(violations)
        record = self.model(**self._values(validated), **extra)
        record = self.repo.add(record)
        logger.info("%s_created id=%s", self.descriptor.name, record.id)
        return record

    def _apply_update(self, record, payload):
        schema = self.descriptor.create_schema
        validated, violations = validate_payload(schema, payload, existing=record)
        if violations:
            raise ValidationFailed(violations)
        for name, value in self._values(validated, include=supplied_fields(schema, payload)).items():
            setattr(record, name, value)
        record.updated_at = models.utcnow()
        return self.repo.save(record)

    def update(self, record_id: str, payload):
        """Apply only the supplied fields; cross-field rules see the merged record."""
        record = self.get(record_id)
        record = self._apply_update(record, payload)
        logger.info("%s_updated id=%s", self.descriptor.name, record.id)
        return record

    def soft_delete(self, record_id: str):
        record = self.get(record_id)
        record.is_active = False
        record.updated_at = models.utcnow()
        self.repo.save(record)
        logger.info("%s_deleted id=%s", self.descriptor.name, record.id)
        return record

    def set_media(self, record_id: str, attr: str, url: str) -> Optional[str]:
        """Point `attr` at a newly stored file and return the previous URL."""
        record = self.get(record_id)
        previous = getattr(record, attr)
        setattr(record, attr, url)
        record.updated_at = models.utcnow()
        self.repo.save(record)
        return previous


class ProfileService(CrudService):
    """The profile is a singleton: one record, created or updated in place."""
    def __init__(self, session: Session):
        super().__init__(session, entities.PROFILE)

    def current(self, include_inactive: bool = False) -> Optional[models.Profile]:
        clauses = [] if include_inactive else [models.Profile.is_active == True]  # noqa: E712
        return self.repo.first(clauses, order_by=[models.Profile.is_active.desc(), models.Profile.created_at.asc()])

    def get_profile(self) -> models.Profile:
        profile = self.current()
        if profile is None:
            raise NotFound("Profile not found")
        return profile

    def save_profile(self, payload) -> tuple:
        """Create the profile or update the existing one; returns `(profile, created)`."""
        existing = self.current(include_inactive=True)
        if existing is None:
            return self.create(payload), True
        existing.is_active = True
        return self._apply_update(existing, payload), False

    def stats(self, today: Optional[date] = None) -> dict:
        today = today or datetime.now(timezone.utc).date()
        active_projects = repositories.RecordRepository(self.session, models.Project).count(
            [models.Project.is_active == True]  # noqa: E712
        )
        skills = repositories.SkillRepository(self.session)
        experience = repositories.ExperienceRepository(self.session)
        first_start = experience.earliest_start()
        years = 0
        if first_start is not None:
            years = max(0, math.floor((today - first_start).days / 365.25))
        return {
            "projectsCompleted": active_projects,
            "yearsOfExperience": years,
            "technicalSkills": skills.count([models.Skill.is_active == True]),  # noqa: E712
            "workExperiences": experience.count([models.Experience.is_active == True]),  # noqa: E712
        }


class ProjectService(CrudService):
    FEATURED_LIMIT = 6

    def __init__(self, session: Session):
        super().__init__(session, entities.PROJECTS)

    def featured(self) -> List[models.Project]:
        project = models.Project
        return self.repo.find(
            [project.is_active == True, project.featured == True],  # noqa: E712
            order_by=[project.display_order.asc(), project.created_at.desc(), project.id.asc()],
            limit=self.FEATURED_LIMIT,
        )

    def add_images(self, record_id: str, urls: List[str]) -> List[dict]:
        """Append uploaded image URLs; the first becomes primary if there was none."""
        project = self.get(record_id)
        existing = list(project.images or [])
        offset = len(existing)
        new_images = [
            {
                "url": url,
                "alt": f"{project.title} - Image {offset + index + 1}",
                "is_primary": index == 0 and offset == 0,
            }
            for index, url in enumerate(urls)
        ]
        project.images = existing + new_images
        project.updated_at = models.utcnow()
        self.repo.save(project)
        return new_images


class SkillService(CrudService):
    def __init__(self, session: Session):
        super().__init__(session, entities.SKILLS, repositories.SkillRepository(session))

    def stats(self) -> dict:
        return {
            "totalSkills": self.repo.count([models.Skill.is_active == True]),  # noqa: E712
            "avgOverallProficiency": self.repo.average_proficiency(),
            "categoryStats": self.repo.category_stats(),
        }


STATUS_RANK = {status: rank for rank, status in enumerate(CONTACT_STATUSES)}


class ContactService(CrudService):
    """Contact submissions and their moderation lifecycle.

    Status only moves forward along new -> read -> replied -> closed.
    Marking as spam closes a message permanently.
    """
    def __init__(self, session: Session, dispatcher=None, mailer=None, admin_email: str = ""):
        super().__init__(session, entities.CONTACT, repositories.ContactRepository(session))
        self.dispatcher = dispatcher
        self.mailer = mailer
        self.admin_email = admin_email

    def submit(self, payload, ip_address: Optional[str], user_agent: Optional[str]) -> models.ContactMessage:
        contact = self.create(payload, ip_address=ip_address, user_agent=user_agent, status="new")
        self._notify(contact)
        return contact

    def _notify(self, contact: models.ContactMessage) -> None:
        """Queue the owner notification and sender confirmation as detached tasks."""
        if self.dispatcher is None or self.mailer is None:
            logger.info("contact_notify_skipped id=%s reason=no mailer", contact.id)
            return
        if self.admin_email:
            subject, body = notification_email(contact)
            self.dispatcher.submit("contact_notification", self.mailer.send, self.admin_email, subject, body)
        subject, body = confirmation_email(contact)
        self.dispatcher.submit("contact_confirmation", self.mailer.send, contact.email, subject, body)

    def open(self, record_id: str) -> models.ContactMessage:
        """Privileged read: a `new` message becomes `read`."""
        contact = self.get(record_id, privileged=True)
        if contact.status == "new" and not contact.is_spam:
            contact.status = "read"
            contact.updated_at = models.utcnow()
            contact = self.repo.save(contact)
        return contact

    def _check_forward(self, contact: models.ContactMessage, target: str) -> None:
        if contact.is_spam:
            raise InvalidTransition("Message was marked as spam and is closed")
        if STATUS_RANK[target] < STATUS_RANK[contact.status]:
            raise InvalidTransition(f"Cannot move a {contact.status} message back to {target}")

    def set_status(self, record_id: str, payload) -> models.ContactMessage:
        validated, violations = validate_payload(ContactStatusIn, payload)
        if violations:
            raise ValidationFailed(violations)
        contact = self.get(record_id, privileged=True)
        self._check_forward(contact, validated.status)
        if contact.status != validated.status:
            contact.status = validated.status
            contact.updated_at = models.utcnow()
            contact = self.repo.save(contact)
        return contact

    def reply(self, record_id: str, payload) -> models.ContactMessage:
        """Email the sender, then mark the message replied.

        If delivery fails the status is left untouched.
        """
        validated, violations = validate_payload(ReplyIn, payload)
        if violations:
            raise ValidationFailed(violations)
        contact = self.get(record_id, privileged=True)
        if contact.status == "closed":
            raise InvalidTransition("Cannot reply to a closed message")
        self._check_forward(contact, "replied")
        if self.mailer is None:
            raise DeliveryFailed("Email delivery is not configured")
        subject, body = reply_email(contact, validated.message)
        try:
            self.mailer.send(contact.email, subject, body)
        except Exception as exc:
            logger.warning("contact_reply_failed id=%s error=%s", contact.id, exc)
            raise DeliveryFailed("Failed to send reply") from exc
        contact.status = "replied"
        contact.updated_at = models.utcnow()
        return self.repo.save(contact)

    def mark_spam(self, record_id: str) -> models.ContactMessage:
        contact = self.get(record_id, privileged=True)
        contact.is_spam = True
        contact.status = "closed"
        contact.updated_at = models.utcnow()
        return self.repo.save(contact)

    def stats(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now(timezone.utc)
        contact = models.ContactMessage
        not_spam = contact.is_spam == False  # noqa: E712
        buckets: dict = {}
        for created in self.repo.created_since(now - timedelta(days=365)):
            key = (created.year, created.month)
            buckets[key] = buckets.get(key, 0) + 1
        return {
            "totalContacts": self.repo.count([not_spam]),
            "newContacts": self.repo.count([not_spam, contact.status == "new"]),
            "repliedContacts": self.repo.count([not_spam, contact.status == "replied"]),
            "spamContacts": self.repo.count([contact.is_spam == True]),  # noqa: E712
            "monthlyStats": [
                {"year": year, "month": month, "count": count}
                for (year, month), count in sorted(buckets.items())
            ],
        }


def service_for(session: Session, descriptor: entities.EntityDescriptor) -> CrudService:
    """The service handling `descriptor`'s generic CRUD routes."""
    specialised: dict = {
        entities.PROJECTS.name: ProjectService,
        entities.SKILLS.name: SkillService,
    }
    factory: Optional[Callable] = specialised.get(descriptor.name)
    if factory is not None:
        return factory(session)
    return CrudService(session, descriptor)
