from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from models.db import (
    set_db_path,
    init_db,
    create_user,
    create_session,
    create_project,
    create_idea,
    create_section,
)


@pytest.fixture
def db(tmp_path):
    """Fresh migrated SQLite database per test."""
    set_db_path(tmp_path / "test.db")
    init_db()
    return tmp_path / "test.db"


@pytest.fixture
def user(db):
    user_id = create_user("owner@example.com", "Owner")
    token = create_session(user_id)
    return {"id": user_id, "token": token, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture
def other_user(db):
    user_id = create_user("other@example.com", "Other")
    token = create_session(user_id)
    return {"id": user_id, "token": token, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture
def section(user):
    """A project -> idea -> section chain owned by `user`."""
    project_id = create_project(user["id"], "Todo App")
    idea_id = create_idea(project_id, "Task tracker", "Track tasks for small teams")
    section_id = create_section(idea_id, "Backend API", "REST endpoints")
    return {"project_id": project_id, "idea_id": idea_id, "id": section_id}


@pytest.fixture
def client(db) -> TestClient:
    import main

    return TestClient(main.app)
