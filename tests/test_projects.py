from conftest import project_payload


def _create(client, headers, **overrides):
    r = client.post("/api/projects", json=project_payload(**overrides), headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_create_and_fetch_project(client, admin_headers):
    created = _create(client, admin_headers, links={"github": "https://github.com/me/site"})
    assert created["status"] == "completed"
    assert created["isActive"] is True
    assert created["links"]["github"] == "https://github.com/me/site"

    r = client.get(f"/api/projects/{created['id']}")
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["data"]["title"] == "Portfolio Site"


def test_validation_reports_every_violation(client, admin_headers):
    r = client.post(
        "/api/projects",
        json={"title": "ab", "description": "short", "technologies": [], "category": "games"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    body = r.json()
    assert body["error"]["message"] == "Validation Error"
    fields = {d["field"] for d in body["error"]["details"]}
    assert {"title", "description", "technologies", "category", "startDate"} <= fields


def test_unknown_fields_are_rejected(client, admin_headers):
    r = client.post("/api/projects", json=project_payload(owner="me"), headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["details"][0]["field"] == "owner"


def test_end_date_before_start_date(client, admin_headers):
    r = client.post("/api/projects", json=project_payload(endDate="2022-12-31"), headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["details"] == [
        {"field": "endDate", "message": "endDate must be on or after startDate"}
    ]


def test_non_object_body(client, admin_headers):
    r = client.post("/api/projects", json=["not", "an", "object"], headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["details"][0]["field"] == "body"


def test_partial_update_checks_merged_record(client, admin_headers):
    created = _create(client, admin_headers)
    r = client.put(f"/api/projects/{created['id']}", json={"featured": True}, headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["featured"] is True
    assert data["title"] == created["title"]
    assert data["updatedAt"] >= created["updatedAt"]

    r = client.put(f"/api/projects/{created['id']}", json={"endDate": "2020-01-01"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["details"][0]["field"] == "endDate"


def test_update_missing_project(client, admin_headers):
    r = client.put("/api/projects/does-not-exist", json={"featured": True}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Project not found"


def test_soft_delete_hides_from_public_reads(client, admin_headers):
    created = _create(client, admin_headers)
    r = client.delete(f"/api/projects/{created['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["message"] == "Project deleted successfully"

    assert client.get(f"/api/projects/{created['id']}").status_code == 404
    assert client.get("/api/projects").json()["pagination"]["totalCount"] == 0

    privileged = client.get("/api/projects", params={"includeInactive": "true"}, headers=admin_headers)
    items = privileged.json()["data"]
    assert [p["id"] for p in items] == [created["id"]]
    assert items[0]["isActive"] is False
    anonymous = client.get("/api/projects", params={"includeInactive": "true"})
    assert anonymous.json()["data"] == []


def test_pagination_metadata(client, admin_headers):
    for i in range(3):
        _create(client, admin_headers, title=f"Project {i}", displayOrder=i)
    r = client.get("/api/projects", params={"page": 2, "limit": 2, "sort": "displayOrder"})
    assert r.status_code == 200
    body = r.json()
    assert [p["title"] for p in body["data"]] == ["Project 2"]
    assert body["pagination"] == {
        "currentPage": 2,
        "limit": 2,
        "totalPages": 2,
        "totalCount": 3,
        "totalProjects": 3,
        "hasNextPage": False,
        "hasPrevPage": True,
    }


def test_page_past_the_end_is_empty(client, admin_headers):
    _create(client, admin_headers)
    body = client.get("/api/projects", params={"page": 5}).json()
    assert body["data"] == []
    assert body["pagination"]["hasPrevPage"] is True
    assert body["pagination"]["hasNextPage"] is False


def test_bad_list_parameters(client):
    r = client.get("/api/projects", params={"limit": 0, "page": 0, "sort": "owner", "colour": "red"})
    assert r.status_code == 400
    fields = {d["field"] for d in r.json()["error"]["details"]}
    assert {"limit", "page", "sort"} <= fields

    r = client.get("/api/projects", params={"page": "abc"})
    assert r.status_code == 400
    assert r.json()["error"]["details"][0]["field"] == "page"

    r = client.get("/api/projects", params={"featured": "maybe"})
    assert r.status_code == 400


def test_filters_and_search(client, admin_headers):
    _create(client, admin_headers, title="Mobile Banking", category="mobile", technologies=["Kotlin"])
    _create(client, admin_headers, title="Shop Backend", category="api", technologies=["Go", "Postgres"],
            featured=True)
    _create(client, admin_headers, title="Blog", category="web", status="in-progress")

    r = client.get("/api/projects", params={"category": "api"})
    assert [p["title"] for p in r.json()["data"]] == ["Shop Backend"]

    r = client.get("/api/projects", params={"featured": "true"})
    assert [p["title"] for p in r.json()["data"]] == ["Shop Backend"]

    r = client.get("/api/projects", params={"status": "in-progress"})
    assert [p["title"] for p in r.json()["data"]] == ["Blog"]

    r = client.get("/api/projects", params={"search": "postgres"})
    assert [p["title"] for p in r.json()["data"]] == ["Shop Backend"]

    r = client.get("/api/projects", params={"search": "BANK"})
    assert [p["title"] for p in r.json()["data"]] == ["Mobile Banking"]


def test_ties_are_broken_by_display_order(client, admin_headers):
    for order in (2, 0, 1):
        _create(client, admin_headers, title=f"Project {order}", category="web", displayOrder=order)
    r = client.get("/api/projects", params={"sort": "category"})
    assert r.status_code == 400

    r = client.get("/api/projects", params={"sort": "startDate"})
    assert [p["displayOrder"] for p in r.json()["data"]] == [0, 1, 2]


def test_featured_and_category_routes(client, admin_headers):
    for i in range(8):
        _create(client, admin_headers, title=f"Featured {i}", featured=True, displayOrder=i)
    _create(client, admin_headers, title="Plain API", category="api")

    featured = client.get("/api/projects/featured").json()["data"]
    assert len(featured) == 6
    assert [p["displayOrder"] for p in featured] == [0, 1, 2, 3, 4, 5]

    by_category = client.get("/api/projects/category/api").json()
    assert [p["title"] for p in by_category["data"]] == ["Plain API"]
    assert by_category["pagination"]["totalProjects"] == 1


def test_search_matches_list_elements_not_their_json_text(client, admin_headers):
    _create(client, admin_headers, title="Shop Backend", technologies=["Go", "Postgres"])
    _create(client, admin_headers, title="Local News", technologies=["Tiếng Việt", "Django"])

    r = client.get("/api/projects", params={"search": "Tiếng"})
    assert [p["title"] for p in r.json()["data"]] == ["Local News"]

    r = client.get("/api/projects", params={"search": "go"})
    assert {p["title"] for p in r.json()["data"]} == {"Shop Backend", "Local News"}

    for term in ('", "', 'Go"', '["'):
        r = client.get("/api/projects", params={"search": term})
        assert r.json()["pagination"]["totalCount"] == 0, term


def test_deleting_twice_is_not_found_and_changes_nothing(client, admin_headers):
    created = _create(client, admin_headers)
    assert client.delete(f"/api/projects/{created['id']}", headers=admin_headers).status_code == 200
    before = client.get(f"/api/projects/{created['id']}", headers=admin_headers).json()["data"]
    assert before["isActive"] is False

    r = client.delete(f"/api/projects/{created['id']}", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Project not found"
    after = client.get(f"/api/projects/{created['id']}", headers=admin_headers).json()["data"]
    assert after == before


def test_walking_every_page_yields_the_full_sorted_set(client, admin_headers):
    for i, order in enumerate((3, 1, 1, 0, 2, 1, 4)):
        _create(client, admin_headers, title=f"Project {i}", displayOrder=order)
    everything = client.get("/api/projects", params={"sort": "displayOrder", "limit": 100}).json()["data"]
    assert len(everything) == 7

    walked, page = [], 1
    while True:
        body = client.get("/api/projects", params={"sort": "displayOrder", "limit": 2, "page": page}).json()
        walked.extend(p["id"] for p in body["data"])
        if not body["pagination"]["hasNextPage"]:
            break
        page += 1
    assert page == 4
    assert walked == [p["id"] for p in everything]
    assert len(set(walked)) == 7


def test_filter_values_must_be_known_choices(client, admin_headers):
    _create(client, admin_headers)
    r = client.get("/api/projects", params={"category": "games"})
    assert r.status_code == 400
    assert r.json()["error"]["details"] == [
        {"field": "category", "message": "category must be one of: web, mobile, desktop, api, other"}
    ]
    assert client.get("/api/projects/category/games").status_code == 400
    assert client.get("/api/projects", params={"status": "completed"}).json()["pagination"]["totalCount"] == 1
