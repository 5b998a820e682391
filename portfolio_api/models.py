"""SQLModel data models.

Every portfolio entity maps to its own table. All of them share the
`RecordBase` columns (opaque id, soft-delete flag, display order and
timestamps); nested objects and lists are stored in JSON columns.
"""

import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class RecordBase(SQLModel):
    """Columns shared by every entity table."""
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    is_active: bool = Field(default=True, index=True)
    display_order: int = Field(default=0, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class Profile(RecordBase, table=True):
    """The portfolio owner. At most one active row is expected."""
    __tablename__ = "profiles"

    first_name: str
    last_name: str
    title: str
    bio: str
    email: str = Field(index=True, unique=True)
    phone: Optional[str] = None
    location: Optional[dict] = Field(default=None, sa_type=JSON)
    avatar: Optional[str] = None
    resume: Optional[str] = None
    social_links: Optional[dict] = Field(default=None, sa_type=JSON)


class Project(RecordBase, table=True):
    """A portfolio project.

    `images` is an ordered list of `{url, alt, is_primary}` objects; the
    first uploaded image becomes primary when the list was empty.
    """
    __tablename__ = "projects"

    title: str
    description: str
    long_description: Optional[str] = None
    technologies: List[str] = Field(default_factory=list, sa_type=JSON)
    images: List[dict] = Field(default_factory=list, sa_type=JSON)
    links: Optional[dict] = Field(default=None, sa_type=JSON)
    category: str = Field(index=True)
    status: str = Field(default="completed", index=True)
    featured: bool = Field(default=False, index=True)
    start_date: date
    end_date: Optional[date] = None


class Skill(RecordBase, table=True):
    __tablename__ = "skills"

    name: str
    category: str = Field(index=True)
    proficiency: int
    years_of_experience: float = 0
    icon: Optional[str] = None
    color: str = "#3498db"
    description: Optional[str] = None
    certifications: List[dict] = Field(default_factory=list, sa_type=JSON)


class Experience(RecordBase, table=True):
    __tablename__ = "experiences"

    company: str
    position: str
    location: Optional[dict] = Field(default=None, sa_type=JSON)
    employment_type: str = Field(index=True)
    start_date: date = Field(index=True)
    end_date: Optional[date] = None
    is_current: bool = False
    description: str
    achievements: List[str] = Field(default_factory=list, sa_type=JSON)
    technologies: List[str] = Field(default_factory=list, sa_type=JSON)
    company_logo: Optional[str] = None
    company_website: Optional[str] = None


class Education(RecordBase, table=True):
    __tablename__ = "education"

    institution: str
    degree: str
    field: str
    location: Optional[dict] = Field(default=None, sa_type=JSON)
    start_date: date = Field(index=True)
    end_date: Optional[date] = None
    is_current: bool = False
    gpa: Optional[float] = None
    description: Optional[str] = None
    achievements: List[str] = Field(default_factory=list, sa_type=JSON)
    relevant_courses: List[str] = Field(default_factory=list, sa_type=JSON)
    institution_logo: Optional[str] = None
    institution_website: Optional[str] = None


class ContactMessage(RecordBase, table=True):
    """A contact form submission.

    `status` only moves forward (new -> read -> replied -> closed);
    marking as spam closes the message for good.
    """
    __tablename__ = "contact_messages"

    name: str
    email: str = Field(index=True)
    subject: str
    message: str
    phone: Optional[str] = None
    company: Optional[str] = None
    project_type: str = "other"
    budget: str = "not-specified"
    timeline: str = "flexible"
    status: str = Field(default="new", index=True)
    is_spam: bool = Field(default=False, index=True)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AdminUser(SQLModel, table=True):
    """A privileged user allowed to edit content and moderate messages.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    """
    __tablename__ = "admin_users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow)
