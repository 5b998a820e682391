"""Typed HTTP client for the portfolio API.

`PortfolioClient` exposes one resource object per entity with a method
per backend operation. Reads go through a shared `QueryCache`; every
successful write invalidates the entity's namespace so the next read
refetches. Responses are parsed into the read schemas from
`portfolio_api.schemas`.
"""

from dataclasses import dataclass
from typing import Generic, Iterable, List, Optional, Tuple, Type, TypeVar, Union

import httpx
from pydantic import BaseModel

from .. import schemas
from .cache import QueryCache

T = TypeVar("T", bound=BaseModel)

# (filename, content, content_type)
UploadPart = Tuple[str, bytes, str]


class ApiError(Exception):
    """A non-success response from the API."""

    def __init__(self, status_code: int, message: str, details: Optional[list] = None):
        self.status_code = status_code
        self.message = message
        self.details = details or []
        super().__init__(f"{status_code}: {message}")


@dataclass
class Page(Generic[T]):
    items: List[T]
    pagination: dict

    @property
    def total(self) -> int:
        return self.pagination.get("totalCount", 0)


def _body(data: Union[dict, BaseModel]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True, exclude_unset=True)
    return data


def _query_params(params: dict) -> dict:
    out = {}
    for key, value in params.items():
        if value is None:
            continue
        if key == "include_inactive":
            key = "includeInactive"
        out[key] = str(value).lower() if isinstance(value, bool) else value
    return out


class PortfolioClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        cache: Optional[QueryCache] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.http = http_client or httpx.Client(base_url=base_url, timeout=timeout)
        self.cache = cache or QueryCache()
        self.token = token
        self.profile = ProfileResource(self)
        self.projects = ProjectsResource(self, "projects", schemas.ProjectRead)
        self.skills = SkillsResource(self, "skills", schemas.SkillRead)
        self.experience = LogoResource(self, "experience", schemas.ExperienceRead)
        self.education = LogoResource(self, "education", schemas.EducationRead)
        self.contact = ContactResource(self)

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def request(self, method: str, path: str, **kwargs) -> dict:
        """Send a request and return the envelope; raise `ApiError` on failure."""
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self.http.request(method, path, headers=headers, **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error or not body.get("success", False):
            error = body.get("error") or {}
            raise ApiError(response.status_code, error.get("message") or response.reason_phrase, error.get("details"))
        return body

    def login(self, username: str, password: str) -> str:
        body = self.request("POST", "/api/auth/login", json={"username": username, "password": password})
        self.token = body["data"]["accessToken"]
        self.cache.clear()
        return self.token


class ResourceBase(Generic[T]):
    """Cached reads and invalidating writes for one entity namespace."""

    def __init__(self, client: PortfolioClient, namespace: str, read_model: Type[T]):
        self.client = client
        self.namespace = namespace
        self.read_model = read_model
        self.path = f"/api/{namespace}"

    def _read(self, operation: str, params: Optional[dict], loader):
        return self.client.cache.fetch(self.namespace, operation, params, loader)

    def _write(self, method: str, path: str, **kwargs) -> dict:
        body = self.client.request(method, path, **kwargs)
        self.client.cache.invalidate(self.namespace)
        return body

    def _page(self, path: str, params: dict) -> Page[T]:
        body = self.client.request("GET", path, params=_query_params(params))
        return Page([self.read_model.model_validate(item) for item in body["data"]], body.get("pagination", {}))

    def list(self, **params) -> Page[T]:
        return self._read("list", params, lambda: self._page(self.path, params))


class Resource(ResourceBase[T]):
    """CRUD wrappers for one entity namespace."""

    def get(self, record_id: str) -> T:
        def load():
            body = self.client.request("GET", f"{self.path}/{record_id}")
            return self.read_model.model_validate(body["data"])
        return self._read("get", {"id": record_id}, load)

    def create(self, data: Union[dict, BaseModel]) -> T:
        body = self._write("POST", self.path, json=_body(data))
        return self.read_model.model_validate(body["data"])

    def update(self, record_id: str, data: Union[dict, BaseModel]) -> T:
        body = self._write("PUT", f"{self.path}/{record_id}", json=_body(data))
        return self.read_model.model_validate(body["data"])

    def delete(self, record_id: str) -> None:
        self._write("DELETE", f"{self.path}/{record_id}")


class ProjectsResource(Resource[schemas.ProjectRead]):
    def featured(self) -> List[schemas.ProjectRead]:
        def load():
            body = self.client.request("GET", f"{self.path}/featured")
            return [self.read_model.model_validate(item) for item in body["data"]]
        return self._read("featured", None, load)

    def by_category(self, category: str, **params) -> Page[schemas.ProjectRead]:
        return self._read("category", {"category": category, **params},
                          lambda: self._page(f"{self.path}/category/{category}", params))

    def upload_images(self, record_id: str, files: Iterable[UploadPart]) -> List[schemas.ProjectImage]:
        parts = [("projectImages", part) for part in files]
        body = self._write("POST", f"{self.path}/{record_id}/images", files=parts)
        return [schemas.ProjectImage.model_validate(image) for image in body["data"]["images"]]


class SkillsResource(Resource[schemas.SkillRead]):
    def stats(self) -> dict:
        return self._read("stats", None, lambda: self.client.request("GET", f"{self.path}/stats")["data"])

    def by_category(self, category: str, **params) -> Page[schemas.SkillRead]:
        return self._read("category", {"category": category, **params},
                          lambda: self._page(f"{self.path}/category/{category}", params))


class LogoResource(Resource[T]):
    def upload_logo(self, record_id: str, file: UploadPart) -> str:
        body = self._write("POST", f"{self.path}/{record_id}/logo", files={"logo": file})
        data = body["data"]
        return data.get("companyLogo") or data.get("institutionLogo")


class ProfileResource:
    namespace = "profile"
    path = "/api/profile"

    def __init__(self, client: PortfolioClient):
        self.client = client

    def get(self) -> schemas.ProfileRead:
        def load():
            return schemas.ProfileRead.model_validate(self.client.request("GET", self.path)["data"])
        return self.client.cache.fetch(self.namespace, "get", None, load)

    def stats(self) -> dict:
        return self.client.cache.fetch(
            self.namespace, "stats", None, lambda: self.client.request("GET", f"{self.path}/stats")["data"]
        )

    def save(self, data: Union[dict, BaseModel]) -> schemas.ProfileRead:
        body = self.client.request("POST", self.path, json=_body(data))
        self.client.cache.invalidate(self.namespace)
        return schemas.ProfileRead.model_validate(body["data"])

    def _upload(self, field: str, file: UploadPart) -> str:
        body = self.client.request("POST", f"{self.path}/{field}", files={field: file})
        self.client.cache.invalidate(self.namespace)
        return body["data"][field]

    def upload_avatar(self, file: UploadPart) -> str:
        return self._upload("avatar", file)

    def upload_resume(self, file: UploadPart) -> str:
        return self._upload("resume", file)


class ContactResource(ResourceBase[schemas.ContactRead]):
    """Contact form submission and moderation.

    Opening a message marks it read on the server, so `get` is never
    served from the cache.
    """

    def __init__(self, client: PortfolioClient):
        super().__init__(client, "contact", schemas.ContactRead)

    def submit(self, data: Union[dict, BaseModel]) -> str:
        body = self._write("POST", self.path, json=_body(data))
        return body["data"]["id"]

    def get(self, record_id: str) -> schemas.ContactRead:
        body = self._write("GET", f"{self.path}/{record_id}")
        return self.read_model.model_validate(body["data"])

    def stats(self) -> dict:
        return self._read("stats", None, lambda: self.client.request("GET", f"{self.path}/stats")["data"])

    def set_status(self, record_id: str, status: str) -> schemas.ContactRead:
        body = self._write("PUT", f"{self.path}/{record_id}/status", json={"status": status})
        return self.read_model.model_validate(body["data"])

    def reply(self, record_id: str, message: str) -> schemas.ContactRead:
        body = self._write("POST", f"{self.path}/{record_id}/reply", json={"message": message})
        return self.read_model.model_validate(body["data"]["contact"])

    def mark_spam(self, record_id: str) -> None:
        self._write("PUT", f"{self.path}/{record_id}/spam")

