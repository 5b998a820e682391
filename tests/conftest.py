import io
import threading

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from portfolio_api.config import Settings
from portfolio_api.main import create_app

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct-horse"


class FakeMailer:
    """Records outgoing mail instead of talking to SMTP."""

    def __init__(self):
        self.sent = []
        self.fail = False
        self._lock = threading.Lock()

    def send(self, recipient, subject, html_body):
        if self.fail:
            raise ConnectionRefusedError("smtp unavailable")
        with self._lock:
            self.sent.append({"to": recipient, "subject": subject, "body": html_body})


def make_png(size=(32, 32), color="white") -> bytes:
    img = Image.new("RGB", size, color)
    bio = io.BytesIO()
    img.save(bio, format="PNG")
    return bio.getvalue()


def project_payload(**overrides):
    payload = {
        "title": "Portfolio Site",
        "description": "A personal site showing projects and skills.",
        "technologies": ["Python", "FastAPI"],
        "category": "web",
        "startDate": "2023-01-01",
    }
    payload.update(overrides)
    return payload


def skill_payload(**overrides):
    payload = {"name": "Python", "category": "backend", "proficiency": 90, "yearsOfExperience": 5}
    payload.update(overrides)
    return payload


def experience_payload(**overrides):
    payload = {
        "company": "Acme Corp",
        "position": "Backend Engineer",
        "employmentType": "full-time",
        "startDate": "2019-03-01",
        "description": "Built and ran the order processing services.",
    }
    payload.update(overrides)
    return payload


def education_payload(**overrides):
    payload = {
        "institution": "State University",
        "degree": "BSc",
        "field": "Computer Science",
        "startDate": "2014-09-01",
        "endDate": "2018-06-30",
    }
    payload.update(overrides)
    return payload


def profile_payload(**overrides):
    payload = {
        "firstName": "Jordan",
        "lastName": "Lee",
        "title": "Software Engineer",
        "bio": "I build web services and the tools around them.",
        "email": "Jordan@Example.com",
    }
    payload.update(overrides)
    return payload


def contact_payload(**overrides):
    payload = {
        "name": "Sam Visitor",
        "email": "sam@example.com",
        "subject": "Project enquiry",
        "message": "I would like to talk about a new website.",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        UPLOAD_DIR=tmp_path / "uploads",
        JWT_SECRET="test-secret",
        ADMIN_USERNAME=ADMIN_USERNAME,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        ADMIN_NOTIFY_EMAIL="owner@example.com",
        MAX_UPLOAD_BYTES=64 * 1024,
    )


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def app(settings, mailer):
    return create_app(settings, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(client):
    r = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['data']['accessToken']}"}
