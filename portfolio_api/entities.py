"""Entity descriptors driving the generic CRUD engine.

A descriptor names an entity's table, its input and read schemas, and the
query surface the list operation accepts (filters, search fields, sort
keys). Public query names are the camelCase API names; the values are
column attribute names on the table. Filter values are checked against
`filter_choices`, or the `Literal` choices of the input schema field.
"""

from dataclasses import dataclass, field
from typing import Mapping, Tuple

from . import models, schemas


@dataclass(frozen=True)
class EntityDescriptor:
    name: str
    namespace: str
    label: str
    model: type
    create_schema: type
    read_schema: type
    count_key: str
    filter_fields: Mapping[str, str] = field(default_factory=dict)
    filter_choices: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    search_fields: Tuple[str, ...] = ()
    sort_fields: Mapping[str, str] = field(default_factory=dict)
    default_sort: str = "displayOrder"
    default_limit: int = 10
    max_limit: int = 100
    default_filters: Mapping[str, object] = field(default_factory=dict)
    list_exclude: Tuple[str, ...] = ()

    @property
    def not_found_message(self) -> str:
        return f"{self.label} not found"


_COMMON_SORTS = {
    "displayOrder": "display_order",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


PROFILE = EntityDescriptor(
    name="profile",
    namespace="profile",
    label="Profile",
    model=models.Profile,
    create_schema=schemas.ProfileIn,
    read_schema=schemas.ProfileRead,
    count_key="totalProfiles",
)

PROJECTS = EntityDescriptor(
    name="project",
    namespace="projects",
    label="Project",
    model=models.Project,
    create_schema=schemas.ProjectIn,
    read_schema=schemas.ProjectRead,
    count_key="totalProjects",
    filter_fields={"category": "category", "status": "status", "featured": "featured"},
    search_fields=("title", "description", "technologies"),
    sort_fields={**_COMMON_SORTS, "title": "title", "startDate": "start_date", "endDate": "end_date"},
    default_sort="-createdAt",
    default_limit=10,
)

SKILLS = EntityDescriptor(
    name="skill",
    namespace="skills",
    label="Skill",
    model=models.Skill,
    create_schema=schemas.SkillIn,
    read_schema=schemas.SkillRead,
    count_key="totalSkills",
    filter_fields={"category": "category"},
    search_fields=("name", "description"),
    sort_fields={**_COMMON_SORTS, "name": "name", "proficiency": "proficiency",
                 "yearsOfExperience": "years_of_experience"},
    default_sort="displayOrder",
    default_limit=50,
)

EXPERIENCE = EntityDescriptor(
    name="experience",
    namespace="experience",
    label="Experience",
    model=models.Experience,
    create_schema=schemas.ExperienceIn,
    read_schema=schemas.ExperienceRead,
    count_key="totalExperiences",
    filter_fields={"employmentType": "employment_type", "isCurrent": "is_current"},
    search_fields=("company", "position", "description", "technologies"),
    sort_fields={**_COMMON_SORTS, "startDate": "start_date", "endDate": "end_date", "company": "company"},
    default_sort="-startDate",
    default_limit=50,
)

EDUCATION = EntityDescriptor(
    name="education",
    namespace="education",
    label="Education",
    model=models.Education,
    create_schema=schemas.EducationIn,
    read_schema=schemas.EducationRead,
    count_key="totalEducation",
    filter_fields={"degree": "degree", "isCurrent": "is_current"},
    search_fields=("institution", "degree", "field", "description"),
    sort_fields={**_COMMON_SORTS, "startDate": "start_date", "endDate": "end_date",
                 "institution": "institution"},
    default_sort="-startDate",
    default_limit=50,
)

CONTACT = EntityDescriptor(
    name="contact",
    namespace="contact",
    label="Contact",
    model=models.ContactMessage,
    create_schema=schemas.ContactIn,
    read_schema=schemas.ContactRead,
    count_key="totalContacts",
    filter_fields={"status": "status", "isSpam": "is_spam", "projectType": "project_type"},
    filter_choices={"status": schemas.CONTACT_STATUSES},
    search_fields=("name", "email", "subject", "message"),
    sort_fields={**_COMMON_SORTS, "status": "status", "name": "name"},
    default_sort="-createdAt",
    default_limit=20,
    default_filters={"is_spam": False},
    list_exclude=("ip_address", "user_agent"),
)
