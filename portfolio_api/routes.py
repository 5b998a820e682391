"""HTTP controllers for the portfolio entities.

Controllers are intentionally thin: they read the request, delegate to a
service and wrap the result in the response envelope
`{success, data, pagination?}`. Errors are raised as domain exceptions
and rendered by the handlers registered in `main.py`.

Projects, skills, experience and education share the generic routes from
`add_crud_routes`; their extras are registered first so fixed paths such
as `/featured` win over `/{record_id}`.
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlmodel import Session

from . import entities, models, services
from .auth import optional_admin, require_admin
from .database import get_session
from .errors import AuthenticationFailed, RateLimited, ValidationFailed
from .schemas import LoginIn, ProjectImage, validate_payload
from .services import ListQuery, serialize

CONTACT_RATE_LIMIT_MESSAGE = "Too many contact form submissions, please try again later."
MAX_PROJECT_IMAGES = 5


def envelope(data: Any = None, pagination: Optional[dict] = None) -> dict:
    body = {"success": True, "data": data}
    if pagination is not None:
        body["pagination"] = pagination
    return body


def _list_query(request: Request, descriptor, page: int, limit: Optional[int], sort: Optional[str],
                search: Optional[str], include_inactive: bool, **fixed) -> ListQuery:
    filters = {name: request.query_params[name] for name in descriptor.filter_fields if name in request.query_params}
    filters.update(fixed)
    return ListQuery(page=page, limit=limit, sort=sort, search=search, filters=filters,
                     include_inactive=include_inactive)


def _page_response(descriptor, page: services.Page, exclude=()) -> dict:
    return envelope([serialize(descriptor, r, exclude) for r in page.items], page.pagination)


def _replace_media(request: Request, service: services.CrudService, record_id: str, attr: str,
                   field: str, upload: Optional[UploadFile]) -> str:
    """Store `upload`, point the record at it and drop the previous file in the background."""
    service.get(record_id)
    store = request.app.state.uploads
    stored = store.accept(field, [upload])[0]
    previous = service.set_media(record_id, attr, stored.url)
    if previous and previous != stored.url:
        request.app.state.dispatcher.submit("upload_cleanup", store.remove, previous)
    return stored.url


def add_crud_routes(router: APIRouter, descriptor: entities.EntityDescriptor) -> None:
    """Register list/get/create/update/delete for `descriptor` on `router`."""

    @router.get("")
    def list_records(
        request: Request,
        page: int = 1,
        limit: Optional[int] = None,
        sort: Optional[str] = None,
        search: Optional[str] = None,
        include_inactive: bool = Query(False, alias="includeInactive"),
        session: Session = Depends(get_session),
        admin: Optional[models.AdminUser] = Depends(optional_admin),
    ):
        svc = services.service_for(session, descriptor)
        query = _list_query(request, descriptor, page, limit, sort, search, include_inactive)
        return _page_response(descriptor, svc.list(query, privileged=admin is not None))

    @router.get("/{record_id}")
    def get_record(
        record_id: str,
        session: Session = Depends(get_session),
        admin: Optional[models.AdminUser] = Depends(optional_admin),
    ):
        svc = services.service_for(session, descriptor)
        return envelope(serialize(descriptor, svc.get(record_id, privileged=admin is not None)))

    @router.post("", status_code=201)
    def create_record(
        payload: Any = Body(...),
        session: Session = Depends(get_session),
        admin: models.AdminUser = Depends(require_admin),
    ):
        record = services.service_for(session, descriptor).create(payload)
        return envelope(serialize(descriptor, record))

    @router.put("/{record_id}")
    def update_record(
        record_id: str,
        payload: Any = Body(...),
        session: Session = Depends(get_session),
        admin: models.AdminUser = Depends(require_admin),
    ):
        record = services.service_for(session, descriptor).update(record_id, payload)
        return envelope(serialize(descriptor, record))

    @router.delete("/{record_id}")
    def delete_record(
        record_id: str,
        session: Session = Depends(get_session),
        admin: models.AdminUser = Depends(require_admin),
    ):
        services.service_for(session, descriptor).soft_delete(record_id)
        return envelope({"message": f"{descriptor.label} deleted successfully"})


# Auth

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


@auth_router.post("/login")
def login(request: Request, payload: Any = Body(...), session: Session = Depends(get_session)):
    """Authenticate an admin and return a bearer token."""
    validated, violations = validate_payload(LoginIn, payload)
    if violations:
        raise ValidationFailed(violations)
    token = services.AuthService(session, request.app.state.settings).authenticate(
        validated.username, validated.password
    )
    if not token:
        raise AuthenticationFailed("invalid credentials")
    return envelope({"accessToken": token, "tokenType": "bearer"})


# Profile

profile_router = APIRouter(prefix="/api/profile", tags=["profile"])


@profile_router.get("")
def get_profile(session: Session = Depends(get_session)):
    return envelope(serialize(entities.PROFILE, services.ProfileService(session).get_profile()))


@profile_router.post("")
def save_profile(
    payload: Any = Body(...),
    session: Session = Depends(get_session),
    admin: models.AdminUser = Depends(require_admin),
):
    """Create the profile, or update the existing one with the supplied fields."""
    profile, created = services.ProfileService(session).save_profile(payload)
    return JSONResponse(status_code=201 if created else 200, content=envelope(serialize(entities.PROFILE, profile)))


@profile_router.get("/stats")
def profile_stats(session: Session = Depends(get_session)):
    return envelope(services.ProfileService(session).stats())


@profile_router.post("/avatar")
def upload_avatar(
    request: Request,
    avatar: Optional[UploadFile] = File(None),
    session: Session = Depends(get_session),
    admin: models.AdminUser = Depends(require_admin),
):
    svc = services.ProfileService(session)
    url = _replace_media(request, svc, svc.get_profile().id, "avatar", "avatar", avatar)
    return envelope({"avatar": url, "message": "Avatar uploaded successfully"})


@profile_router.post("/resume")
def upload_resume(
    request: Request,
    resume: Optional[UploadFile] = File(None),
    session: Session = Depends(get_session),
    admin: models.AdminUser = Depends(require_admin),
):
    svc = services.ProfileService(session)
    url = _replace_media(request, svc, svc.get_profile().id, "resume", "resume", resume)
    return envelope({"resume": url, "message": "Resume uploaded successfully"})


# Projects

projects_router = APIRouter(prefix="/api/projects", tags=["projects"])


@projects_router.get("/featured")
def featured_projects(session: Session = Depends(get_session)):
    projects = services.ProjectService(session).featured()
    return envelope([serialize(entities.PROJECTS, p) for p in projects])


@projects_router.get("/category/{category}")
def projects_by_category(
    category: str,
    page: int = 1,
    limit: Optional[int] = None,
    sort: Optional[str] = "displayOrder,-createdAt",
    session: Session = Depends(get_session),
):
    svc = services.ProjectService(session)
    query = ListQuery(page=page, limit=limit, sort=sort, filters={"category": category})
    return _page_response(entities.PROJECTS, svc.list(query))


@projects_router.post("/{record_id}/images")
def upload_project_images(
    request: Request,
    record_id: str,
    files: Optional[List[UploadFile]] = File(None, alias="projectImages"),
    session: Session = Depends(get_session),
    admin: models.AdminUser = Depends(require_admin),
):
    svc = services.ProjectService(session)
    svc.get(record_id)
    stored = request.app.state.uploads.accept("projectImages", files or [], max_files=MAX_PROJECT_IMAGES)
    images = svc.add_images(record_id, [s.url for s in stored])
    return envelope({
        "images": [ProjectImage.model_validate(img).model_dump(by_alias=True) for img in images],
        "message": "Images uploaded successfully",
    })


add_crud_routes(projects_router, entities.PROJECTS)


# Skills

skills_router = APIRouter(prefix="/api/skills", tags=["skills"])


@skills_router.get("/stats")
def skill_stats(session: Session = Depends(get_session)):
    return envelope(services.SkillService(session).stats())


@skills_router.get("/category/{category}")
def skills_by_category(
    category: str,
    page: int = 1,
    limit: Optional[int] = None,
    sort: Optional[str] = "displayOrder,name",
    session: Session = Depends(get_session),
):
    svc = services.SkillService(session)
    query = ListQuery(page=page, limit=limit, sort=sort, filters={"category": category})
    return _page_response(entities.SKILLS, svc.list(query))


add_crud_routes(skills_router, entities.SKILLS)


# Experience and education

experience_router = APIRouter(prefix="/api/experience", tags=["experience"])


@experience_router.post("/{record_id}/logo")
def upload_company_logo(
    request: Request,
    record_id: str,
    logo: Optional[UploadFile] = File(None),
    session: Session = Depends(get_session),
    admin: models.AdminUser = Depends(require_admin),
):
    svc = services.CrudService(session, entities.EXPERIENCE)
    url = _replace_media(request, svc, record_id, "company_logo", "companyLogo", logo)
    return envelope({"companyLogo": url, "message": "Logo uploaded successfully"})


add_crud_routes(experience_router, entities.EXPERIENCE)

education_router = APIRouter(prefix="/api/education", tags=["education"])


@education_router.post("/{record_id}/logo")
def upload_institution_logo(
    request: Request,
    record_id: str,
    logo: Optional[UploadFile] = File(None),
    session: Session = Depends(get_session),
    admin: models.AdminUser = Depends(require_admin),
):
    svc = services.CrudService(session, entities.EDUCATION)
    url = _replace_media(request, svc, record_id, "institution_logo", "institutionLogo", logo)
    return envelope({"institutionLogo": url, "message": "Logo uploaded successfully"})


add_crud_routes(education_router, entities.EDUCATION)


# Contact

contact_router = APIRouter(prefix="/api/contact", tags=["contact"])


def contact_service(request: Request, session: Session = Depends(get_session)) -> services.ContactService:
    state = request.app.state
    return services.ContactService(
        session,
        dispatcher=state.dispatcher,
        mailer=state.mailer,
        admin_email=state.settings.ADMIN_NOTIFY_EMAIL,
    )


def _enforce_contact_rate_limit(request: Request) -> None:
    settings = request.app.state.settings
    key = f"{request.client.host if request.client else 'unknown'}:contact"
    allowed, retry_after = request.app.state.limiter.allow(
        key, settings.CONTACT_RATE_LIMIT_MAX, settings.CONTACT_RATE_LIMIT_WINDOW_SECONDS
    )
    if not allowed:
        raise RateLimited(retry_after, message=CONTACT_RATE_LIMIT_MESSAGE)


@contact_router.post("", status_code=201)
def submit_contact(
    request: Request,
    payload: Any = Body(None),
    svc: services.ContactService = Depends(contact_service),
):
    """Public contact form. Rate limited per source address."""
    _enforce_contact_rate_limit(request)
    contact = svc.submit(
        payload,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent"),
    )
    return envelope({"message": "Message sent successfully! I'll get back to you soon.", "id": contact.id})


@contact_router.get("")
def list_contacts(
    request: Request,
    page: int = 1,
    limit: Optional[int] = None,
    sort: Optional[str] = None,
    search: Optional[str] = None,
    svc: services.ContactService = Depends(contact_service),
    admin: models.AdminUser = Depends(require_admin),
):
    query = _list_query(request, entities.CONTACT, page, limit, sort, search, False)
    return _page_response(entities.CONTACT, svc.list(query, privileged=True), exclude=entities.CONTACT.list_exclude)


@contact_router.get("/stats")
def contact_stats(
    svc: services.ContactService = Depends(contact_service),
    admin: models.AdminUser = Depends(require_admin),
):
    return envelope(svc.stats())


@contact_router.get("/{record_id}")
def get_contact(
    record_id: str,
    svc: services.ContactService = Depends(contact_service),
    admin: models.AdminUser = Depends(require_admin),
):
    return envelope(serialize(entities.CONTACT, svc.open(record_id)))


@contact_router.put("/{record_id}/status")
def update_contact_status(
    record_id: str,
    payload: Any = Body(...),
    svc: services.ContactService = Depends(contact_service),
    admin: models.AdminUser = Depends(require_admin),
):
    return envelope(serialize(entities.CONTACT, svc.set_status(record_id, payload)))


@contact_router.post("/{record_id}/reply")
def reply_to_contact(
    record_id: str,
    payload: Any = Body(...),
    svc: services.ContactService = Depends(contact_service),
    admin: models.AdminUser = Depends(require_admin),
):
    contact = svc.reply(record_id, payload)
    return envelope({"message": "Reply sent successfully", "contact": serialize(entities.CONTACT, contact)})


@contact_router.put("/{record_id}/spam")
def mark_contact_spam(
    record_id: str,
    svc: services.ContactService = Depends(contact_service),
    admin: models.AdminUser = Depends(require_admin),
):
    contact = svc.mark_spam(record_id)
    return envelope({"message": "Contact marked as spam", "id": contact.id})


ROUTERS = (
    auth_router,
    profile_router,
    projects_router,
    skills_router,
    experience_router,
    education_router,
    contact_router,
)
