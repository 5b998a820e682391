from conftest import ADMIN_PASSWORD, ADMIN_USERNAME, project_payload


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_login_and_rejected_credentials(client):
    r = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["tokenType"] == "bearer"
    assert body["data"]["accessToken"]

    bad = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": "nope"})
    assert bad.status_code == 401
    assert bad.json() == {"success": False, "error": {"message": "invalid credentials"}}


def test_login_requires_both_fields(client):
    r = client.post("/api/auth/login", json={"username": ADMIN_USERNAME})
    assert r.status_code == 400
    fields = {d["field"] for d in r.json()["error"]["details"]}
    assert "password" in fields


def test_writes_need_a_token(client):
    r = client.post("/api/projects", json=project_payload())
    assert r.status_code == 401
    assert r.json()["success"] is False
    assert r.headers["WWW-Authenticate"] == "Bearer"


def test_invalid_token_rejected_even_on_public_reads(client):
    r = client.get("/api/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "invalid token"


def test_request_id_is_echoed_or_generated(client):
    r = client.get("/api/projects", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    generated = client.get("/api/projects").headers["X-Request-ID"]
    assert generated and generated != "req-123"


def test_unknown_route_uses_error_envelope(client):
    r = client.get("/api/nothing-here")
    assert r.status_code == 404
    assert r.json()["success"] is False
    assert r.json()["error"]["message"]


def test_admin_seed_is_idempotent(app):
    from fastapi.testclient import TestClient

    with TestClient(app):
        pass
    with TestClient(app) as again:
        r = again.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
        assert r.status_code == 200
