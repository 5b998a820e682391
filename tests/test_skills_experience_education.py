from conftest import education_payload, experience_payload, skill_payload


def test_skill_defaults_and_bounds(client, admin_headers):
    r = client.post("/api/skills", json={"name": "SQL", "category": "database", "proficiency": 70},
                    headers=admin_headers)
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["color"] == "#3498db"
    assert data["yearsOfExperience"] == 0

    r = client.post("/api/skills", json=skill_payload(proficiency=101, color="blue"), headers=admin_headers)
    assert r.status_code == 400
    fields = {d["field"] for d in r.json()["error"]["details"]}
    assert fields == {"proficiency", "color"}


def test_skill_certifications_round_trip_their_date_key(client, admin_headers):
    cert = {"name": "AWS SAA", "issuer": "Amazon", "date": "2022-05-01", "url": "https://aws.amazon.com/cert"}
    r = client.post("/api/skills", json=skill_payload(name="AWS", category="devops", certifications=[cert]),
                    headers=admin_headers)
    assert r.status_code == 201
    fetched = client.get(f"/api/skills/{r.json()['data']['id']}").json()["data"]
    assert fetched["certifications"] == [cert]


def test_skill_stats_and_category(client, admin_headers):
    client.post("/api/skills", json=skill_payload(name="Python", proficiency=90, yearsOfExperience=6),
                headers=admin_headers)
    client.post("/api/skills", json=skill_payload(name="Django", proficiency=70, yearsOfExperience=3),
                headers=admin_headers)
    client.post("/api/skills", json=skill_payload(name="React", category="frontend", proficiency=60),
                headers=admin_headers)
    gone = client.post("/api/skills", json=skill_payload(name="Perl", proficiency=10), headers=admin_headers)
    client.delete(f"/api/skills/{gone.json()['data']['id']}", headers=admin_headers)

    stats = client.get("/api/skills/stats").json()["data"]
    assert stats["totalSkills"] == 3
    assert stats["avgOverallProficiency"] == 73.33
    assert stats["categoryStats"][0] == {
        "category": "backend",
        "count": 2,
        "avgProficiency": 80.0,
        "maxProficiency": 90,
        "totalYearsExp": 9.0,
    }

    backend = client.get("/api/skills/category/backend").json()
    assert [s["name"] for s in backend["data"]] == ["Django", "Python"]
    assert backend["pagination"]["totalSkills"] == 2


def test_experience_date_range_and_default_sort(client, admin_headers):
    r = client.post("/api/experience", json=experience_payload(endDate="2018-01-01"), headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["details"][0]["field"] == "endDate"

    client.post("/api/experience", json=experience_payload(company="Old Co", startDate="2015-01-01",
                                                           endDate="2019-02-01"), headers=admin_headers)
    client.post("/api/experience", json=experience_payload(isCurrent=True), headers=admin_headers)
    body = client.get("/api/experience").json()
    assert [e["company"] for e in body["data"]] == ["Acme Corp", "Old Co"]
    assert body["pagination"]["totalExperiences"] == 2

    current = client.get("/api/experience", params={"isCurrent": "true"}).json()["data"]
    assert [e["company"] for e in current] == ["Acme Corp"]


def test_education_crud(client, admin_headers):
    r = client.post("/api/education", json=education_payload(gpa=3.7), headers=admin_headers)
    assert r.status_code == 201
    record = r.json()["data"]
    assert record["field"] == "Computer Science"

    r = client.put(f"/api/education/{record['id']}", json={"gpa": 4.5}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"]["details"][0]["field"] == "gpa"

    r = client.put(f"/api/education/{record['id']}", json={"relevantCourses": ["Compilers"]},
                   headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["relevantCourses"] == ["Compilers"]
    assert r.json()["data"]["gpa"] == 3.7

    body = client.get("/api/education", params={"search": "state"}).json()
    assert body["pagination"]["totalEducation"] == 1


def test_skill_list_category_filter(client, admin_headers):
    for name, category in (("React", "frontend"), ("CSS", "frontend"), ("Python", "backend"), ("Docker", "devops")):
        client.post("/api/skills", json=skill_payload(name=name, category=category), headers=admin_headers)

    body = client.get("/api/skills", params={"category": "frontend"}).json()
    assert sorted(s["name"] for s in body["data"]) == ["CSS", "React"]
    assert body["pagination"]["totalSkills"] == 2

    r = client.get("/api/skills", params={"category": "bogus"})
    assert r.status_code == 400
    assert r.json()["error"]["details"][0]["field"] == "category"
