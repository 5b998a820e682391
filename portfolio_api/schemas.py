"""Pydantic request/response schemas used by the API.

Input schemas are the declarative rule tables for each entity (types,
required-ness, enumerations, length and range bounds, date ranges);
`validate_payload` applies any of them and reports every violation in
one pass. Read schemas shape records for responses and are reused by the
client package to parse them back.
"""

from datetime import date, datetime
from typing import Annotated, Any, ClassVar, List, Literal, Optional, Tuple, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

URL_PATTERN = r"^https?://[^\s/$.?#][^\s]*$"
PHONE_PATTERN = r"^[+]?[1-9][\d\s\-\(\)]{7,15}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

Url = Annotated[str, Field(pattern=URL_PATTERN, max_length=500)]
Email = Annotated[str, Field(pattern=EMAIL_PATTERN, max_length=254)]
Phone = Annotated[str, Field(pattern=PHONE_PATTERN)]

ProjectCategory = Literal["web", "mobile", "desktop", "api", "other"]
ProjectStatus = Literal["completed", "in-progress", "planned"]
SkillCategory = Literal["frontend", "backend", "database", "devops", "tools", "soft-skills", "other"]
EmploymentType = Literal["full-time", "part-time", "contract", "internship", "freelance"]
ProjectType = Literal["web-development", "mobile-app", "consultation", "collaboration", "other"]
Budget = Literal["under-1k", "1k-5k", "5k-10k", "10k-plus", "not-specified"]
Timeline = Literal["asap", "1-month", "1-3months", "3-6months", "flexible"]
ContactStatus = Literal["new", "read", "replied", "closed"]

CONTACT_STATUSES: Tuple[str, ...] = get_args(ContactStatus)


class InputModel(BaseModel):
    """Base for request bodies: camelCase keys, trimmed strings, no unknown keys.

    `date_ranges` lists `(start_field, end_field)` pairs where the end,
    when both are present, must not precede the start.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )

    date_ranges: ClassVar[Tuple[Tuple[str, str], ...]] = ()


class Location(InputModel):
    city: Optional[str] = Field(default=None, min_length=2, max_length=50)
    country: Optional[str] = Field(default=None, min_length=2, max_length=50)


class SocialLinks(InputModel):
    github: Optional[Url] = None
    linkedin: Optional[Url] = None
    twitter: Optional[Url] = None
    instagram: Optional[Url] = None
    facebook: Optional[Url] = None
    website: Optional[Url] = None


class ProjectLinks(InputModel):
    demo: Optional[Url] = None
    github: Optional[Url] = None
    live: Optional[Url] = None


class ProjectImage(InputModel):
    url: str = Field(min_length=1, max_length=500)
    alt: Optional[str] = Field(default=None, max_length=200)
    is_primary: bool = False


class Certification(InputModel):
    name: Optional[str] = Field(default=None, max_length=100)
    issuer: Optional[str] = Field(default=None, max_length=100)
    issued_on: Optional[date] = Field(default=None, alias="date")
    url: Optional[Url] = None


class ProfileIn(InputModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    title: str = Field(min_length=5, max_length=100)
    bio: str = Field(min_length=10, max_length=1000)
    email: Email
    phone: Optional[Phone] = None
    location: Optional[Location] = None
    social_links: Optional[SocialLinks] = None
    display_order: int = Field(default=0, ge=0)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class ProjectIn(InputModel):
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    long_description: Optional[str] = Field(default=None, max_length=2000)
    technologies: List[Annotated[str, Field(min_length=1, max_length=50)]] = Field(min_length=1)
    category: ProjectCategory
    status: ProjectStatus = "completed"
    featured: bool = False
    start_date: date
    end_date: Optional[date] = None
    links: Optional[ProjectLinks] = None
    images: List[ProjectImage] = Field(default_factory=list)
    display_order: int = Field(default=0, ge=0)

    date_ranges: ClassVar[Tuple[Tuple[str, str], ...]] = (("start_date", "end_date"),)


class SkillIn(InputModel):
    name: str = Field(min_length=2, max_length=50)
    category: SkillCategory
    proficiency: int = Field(ge=1, le=100)
    years_of_experience: float = Field(default=0, ge=0, le=50)
    icon: Optional[str] = Field(default=None, max_length=200)
    color: Annotated[str, Field(pattern=COLOR_PATTERN)] = "#3498db"
    description: Optional[str] = Field(default=None, max_length=300)
    certifications: List[Certification] = Field(default_factory=list)
    display_order: int = Field(default=0, ge=0)


class ExperienceIn(InputModel):
    company: str = Field(min_length=2, max_length=100)
    position: str = Field(min_length=2, max_length=100)
    employment_type: EmploymentType
    start_date: date
    end_date: Optional[date] = None
    is_current: bool = False
    description: str = Field(min_length=10, max_length=1000)
    achievements: List[Annotated[str, Field(max_length=200)]] = Field(default_factory=list)
    technologies: List[str] = Field(default_factory=list)
    location: Optional[Location] = None
    company_website: Optional[Url] = None
    display_order: int = Field(default=0, ge=0)

    date_ranges: ClassVar[Tuple[Tuple[str, str], ...]] = (("start_date", "end_date"),)


class EducationIn(InputModel):
    institution: str = Field(min_length=2, max_length=100)
    degree: str = Field(min_length=2, max_length=100)
    field: str = Field(min_length=2, max_length=100)
    start_date: date
    end_date: Optional[date] = None
    is_current: bool = False
    gpa: Optional[float] = Field(default=None, ge=0, le=4)
    description: Optional[str] = Field(default=None, max_length=500)
    achievements: List[Annotated[str, Field(max_length=200)]] = Field(default_factory=list)
    relevant_courses: List[str] = Field(default_factory=list)
    location: Optional[Location] = None
    institution_website: Optional[Url] = None
    display_order: int = Field(default=0, ge=0)

    date_ranges: ClassVar[Tuple[Tuple[str, str], ...]] = (("start_date", "end_date"),)


class ContactIn(InputModel):
    name: str = Field(min_length=2, max_length=100)
    email: Email
    subject: str = Field(min_length=5, max_length=200)
    message: str = Field(min_length=10, max_length=2000)
    phone: Optional[Phone] = None
    company: Optional[str] = Field(default=None, max_length=100)
    project_type: ProjectType = "other"
    budget: Budget = "not-specified"
    timeline: Timeline = "flexible"

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class ContactStatusIn(InputModel):
    status: ContactStatus


class ReplyIn(InputModel):
    message: str = Field(min_length=1, max_length=5000)


class LoginIn(InputModel):
    """Payload for the admin login endpoint."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


# Read schemas

class ReadModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    is_active: bool = True
    display_order: int = 0
    created_at: datetime
    updated_at: datetime


class ProfileRead(ReadModel):
    first_name: str
    last_name: str
    title: str
    bio: str
    email: str
    phone: Optional[str] = None
    location: Optional[Location] = None
    avatar: Optional[str] = None
    resume: Optional[str] = None
    social_links: Optional[SocialLinks] = None


class ProjectRead(ReadModel):
    title: str
    description: str
    long_description: Optional[str] = None
    technologies: List[str] = []
    images: List[ProjectImage] = []
    links: Optional[ProjectLinks] = None
    category: str
    status: str
    featured: bool = False
    start_date: date
    end_date: Optional[date] = None


class SkillRead(ReadModel):
    name: str
    category: str
    proficiency: int
    years_of_experience: float = 0
    icon: Optional[str] = None
    color: str = "#3498db"
    description: Optional[str] = None
    certifications: List[Certification] = []


class ExperienceRead(ReadModel):
    company: str
    position: str
    location: Optional[Location] = None
    employment_type: str
    start_date: date
    end_date: Optional[date] = None
    is_current: bool = False
    description: str
    achievements: List[str] = []
    technologies: List[str] = []
    company_logo: Optional[str] = None
    company_website: Optional[str] = None


class EducationRead(ReadModel):
    institution: str
    degree: str
    field: str
    location: Optional[Location] = None
    start_date: date
    end_date: Optional[date] = None
    is_current: bool = False
    gpa: Optional[float] = None
    description: Optional[str] = None
    achievements: List[str] = []
    relevant_courses: List[str] = []
    institution_logo: Optional[str] = None
    institution_website: Optional[str] = None


class ContactRead(ReadModel):
    name: str
    email: str
    subject: str
    message: str
    phone: Optional[str] = None
    company: Optional[str] = None
    project_type: str = "other"
    budget: str = "not-specified"
    timeline: str = "flexible"
    status: str = "new"
    is_spam: bool = False
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


# Generic validation

_DATE = TypeAdapter(date)


def field_alias(schema, name: str) -> str:
    info = schema.model_fields[name]
    return info.alias or name


def _aliased_keys(schema, payload: dict) -> dict:
    """Rewrite snake_case field names in `payload` to their public aliases."""
    out = {}
    for key, value in payload.items():
        if key in schema.model_fields:
            key = field_alias(schema, key)
        out[key] = value
    return out


def input_values(schema, record) -> dict:
    """Return the stored values of `record` that `schema` accepts, keyed by alias."""
    values = {}
    for name in schema.model_fields:
        value = getattr(record, name, None)
        if value is not None:
            values[field_alias(schema, name)] = value
    return values


def supplied_fields(schema, payload: dict) -> set:
    """Field names (python side) present in a request payload."""
    names = set()
    for name in schema.model_fields:
        if name in payload or field_alias(schema, name) in payload:
            names.add(name)
    return names


def _loc(loc) -> str:
    return ".".join(str(part) for part in loc)


def _date_range_violations(schema, data: dict) -> List[dict]:
    violations = []
    for start_name, end_name in schema.date_ranges:
        start_key, end_key = field_alias(schema, start_name), field_alias(schema, end_name)
        start, end = data.get(start_key), data.get(end_key)
        if start is None or end is None:
            continue
        try:
            start, end = _DATE.validate_python(start), _DATE.validate_python(end)
        except ValidationError:
            # malformed dates are already reported by the field rules
            continue
        if end < start:
            violations.append({"field": end_key, "message": f"{end_key} must be on or after {start_key}"})
    return violations


def validate_payload(schema, payload: Any, existing=None):
    """Validate `payload` against `schema`.

    Returns `(model, [])` on success or `(None, violations)` where each
    violation is a `{"field", "message"}` dict. All field rules and date
    ranges are checked; nothing short-circuits on the first error. When
    `existing` is given the payload is a partial update and is merged over
    the record's stored values before validation.
    """
    if not isinstance(payload, dict):
        return None, [{"field": "body", "message": "request body must be a JSON object"}]
    data = _aliased_keys(schema, payload)
    if existing is not None:
        data = {**input_values(schema, existing), **data}

    violations: List[dict] = []
    model = None
    try:
        model = schema.model_validate(data)
    except ValidationError as exc:
        for err in exc.errors():
            violations.append({"field": _loc(err["loc"]) or "body", "message": err["msg"]})
    violations.extend(_date_range_violations(schema, data))
    if violations:
        return None, violations
    return model, []
