from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from models.db import create_project, get_project


def test_create_project_defaults_deadline_to_a_week(client: TestClient, user):
    before = datetime.now(timezone.utc)
    r = client.post("/api/new", json={"name": "Todo App"}, headers=user["headers"])
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["name"] == "Todo App" and data["user_id"] == user["id"]
    deadline = datetime.fromisoformat(data["target_deadline"])
    assert before + timedelta(days=7) - timedelta(minutes=1) <= deadline
    assert deadline <= datetime.now(timezone.utc) + timedelta(days=7)


def test_create_project_keeps_given_fields(client: TestClient, user):
    body = {
        "name": "Shop",
        "description": "",
        "tech_stack": "FastAPI",
        "target_deadline": "2030-01-02T03:04:05Z",
    }
    r = client.post("/api/new", json=body, headers=user["headers"])
    assert r.status_code == 201
    data = r.json()
    assert data["description"] is None
    assert data["tech_stack"] == "FastAPI"
    assert data["target_deadline"].startswith("2030-01-02T03:04:05")


def test_create_project_validation_error(client: TestClient, user):
    r = client.post("/api/new", json={"name": ""}, headers=user["headers"])
    assert r.status_code == 400
    issues = r.json()["error"]
    assert isinstance(issues, list) and issues[0]["loc"][-1] == "name"

    bad_date = client.post("/api/new", json={"name": "x", "target_deadline": "tomorrow"}, headers=user["headers"])
    assert bad_date.status_code == 400


def test_requires_session(client: TestClient, db):
    assert client.post("/api/new", json={"name": "x"}).status_code == 401
    r = client.get("/api/projects/1", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized"}


def test_get_new_is_method_not_allowed(client: TestClient):
    assert client.get("/api/new").status_code == 405


def test_get_and_list_projects(client: TestClient, user, other_user):
    pid = create_project(user["id"], "Mine")
    create_project(other_user["id"], "Theirs")
    r = client.get(f"/api/projects/{pid}", headers=user["headers"])
    assert r.status_code == 200 and r.json()["name"] == "Mine"
    listing = client.get("/api/projects", headers=user["headers"]).json()["projects"]
    assert [p["name"] for p in listing] == ["Mine"]
    assert client.get(f"/api/projects/{pid}", headers=other_user["headers"]).status_code == 404
    assert client.get("/api/projects/abc", headers=user["headers"]).status_code == 400


def test_put_updates_own_project(client: TestClient, user):
    pid = create_project(user["id"], "Old", target_deadline="2031-05-05T00:00:00+00:00")
    r = client.put(f"/api/projects/{pid}", json={"name": "New", "timeline": "3 sprints"}, headers=user["headers"])
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["name"] == "New" and data["timeline"] == "3 sprints"
    # Omitted deadline keeps the stored one
    assert data["target_deadline"] == "2031-05-05T00:00:00+00:00"


def test_put_on_foreign_project_is_not_found(client: TestClient, user, other_user):
    pid = create_project(user["id"], "Mine")
    r = client.put(f"/api/projects/{pid}", json={"name": "Stolen"}, headers=other_user["headers"])
    assert r.status_code == 404
    assert get_project(pid, user["id"])["name"] == "Mine"


def test_unexpected_errors_do_not_leak(db, user, monkeypatch):
    import main
    import api.projects as projects_api

    def boom(*args, **kwargs):
        raise RuntimeError("secret connection string")

    monkeypatch.setattr(projects_api, "list_projects", boom)
    c = TestClient(main.app, raise_server_exceptions=False)
    r = c.get("/api/projects", headers=user["headers"])
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
    assert "secret" not in r.text
