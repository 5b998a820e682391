"""Repository classes encapsulating database operations.

`RecordRepository` is shared by every entity table: it persists records,
fetches them by id and runs filtered, ordered, paginated selects built
by the service layer. Entity-specific aggregate queries live in small
subclasses. Repositories return SQLModel objects and commit/refresh
where appropriate.
"""

from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlmodel import Session, select

from . import models


class RecordRepository:
    """CRUD and query operations for one entity table."""
    def __init__(self, session: Session, model):
        self.session = session
        self.model = model

    def add(self, record):
        """Persist a new or modified record and return the refreshed instance."""
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    save = add

    def get(self, record_id: str):
        """Return a record by primary key or `None` if not found."""
        return self.session.get(self.model, record_id)

    def find(self, clauses: Sequence = (), order_by: Sequence = (), offset: Optional[int] = None,
             limit: Optional[int] = None) -> List:
        """Return records matching all `clauses` in the given order."""
        stmt = select(self.model).where(*clauses).order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.exec(stmt).all())

    def first(self, clauses: Sequence = (), order_by: Sequence = ()):
        stmt = select(self.model).where(*clauses).order_by(*order_by).limit(1)
        return self.session.exec(stmt).first()

    def count(self, clauses: Sequence = ()) -> int:
        stmt = select(func.count()).select_from(self.model).where(*clauses)
        return int(self.session.exec(stmt).one())


class SkillRepository(RecordRepository):
    def __init__(self, session: Session):
        super().__init__(session, models.Skill)

    def category_stats(self) -> List[dict]:
        """Per-category aggregates over active skills, largest group first."""
        skill = models.Skill
        stmt = (
            select(
                skill.category,
                func.count(skill.id),
                func.avg(skill.proficiency),
                func.max(skill.proficiency),
                func.sum(skill.years_of_experience),
            )
            .where(skill.is_active == True)  # noqa: E712
            .group_by(skill.category)
        )
        rows = self.session.exec(stmt).all()
        out = [
            {
                "category": category,
                "count": int(count),
                "avgProficiency": round(float(avg or 0), 2),
                "maxProficiency": int(maximum or 0),
                "totalYearsExp": float(total or 0),
            }
            for category, count, avg, maximum, total in rows
        ]
        out.sort(key=lambda row: (-row["count"], row["category"]))
        return out

    def average_proficiency(self) -> float:
        stmt = select(func.avg(models.Skill.proficiency)).where(models.Skill.is_active == True)  # noqa: E712
        value = self.session.exec(stmt).one()
        return round(float(value or 0), 2)


class ExperienceRepository(RecordRepository):
    def __init__(self, session: Session):
        super().__init__(session, models.Experience)

    def earliest_start(self) -> Optional[date]:
        stmt = select(func.min(models.Experience.start_date)).where(models.Experience.is_active == True)  # noqa: E712
        return self.session.exec(stmt).one()


class ContactRepository(RecordRepository):
    def __init__(self, session: Session):
        super().__init__(session, models.ContactMessage)

    def created_since(self, cutoff: datetime) -> List[datetime]:
        """Creation timestamps of non-spam messages received after `cutoff`."""
        contact = models.ContactMessage
        stmt = select(contact.created_at).where(contact.is_spam == False, contact.created_at >= cutoff)  # noqa: E712
        return list(self.session.exec(stmt).all())


class AdminUserRepository:
    """CRUD operations for `AdminUser` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.AdminUser) -> models.AdminUser:
        """Persist a new admin and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.AdminUser]:
        """Return an `AdminUser` by username or `None` if not found."""
        stmt = select(models.AdminUser).where(models.AdminUser.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.AdminUser]:
        """Get an `AdminUser` by primary key."""
        return self.session.get(models.AdminUser, user_id)
