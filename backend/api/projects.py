from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from config import settings
from models.db import create_project, get_project, list_projects, update_project
from models.schemas import Project
from schemas.requests import ProjectIn
from .auth import get_current_user
from .errors import NotFoundError, parse_id


logger = logging.getLogger(__name__)
router = APIRouter()


def _deadline_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def default_deadline(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(days=settings.DEFAULT_DEADLINE_DAYS)


def _project_fields(payload: ProjectIn) -> Dict[str, Any]:
    # Empty optional strings are stored as NULL
    return {
        "name": payload.name,
        "description": payload.description or None,
        "tech_stack": payload.tech_stack or None,
        "timeline": payload.timeline or None,
        "additional_notes": payload.additional_notes or None,
    }


@router.post("/new", status_code=201)
def create_project_route(payload: ProjectIn, user=Depends(get_current_user)):
    fields = _project_fields(payload)
    deadline = payload.target_deadline or default_deadline()
    project_id = create_project(user["id"], target_deadline=_deadline_iso(deadline), **fields)
    logger.info("Created project %s for user %s", project_id, user["id"])
    return Project.from_row(get_project(project_id, user["id"])).model_dump()


@router.get("/new")
def create_project_wrong_method():
    return JSONResponse(status_code=405, content={"error": "Method not allowed"})


@router.get("/projects")
def list_projects_route(user=Depends(get_current_user)):
    return {"projects": [Project.from_row(r).model_dump() for r in list_projects(user["id"])]}


@router.get("/projects/{project_id}")
def get_project_route(project_id: str, user=Depends(get_current_user)):
    pid = parse_id(project_id, "project ID")
    row = get_project(pid, user["id"])
    if row is None:
        raise NotFoundError("Project not found")
    return Project.from_row(row).model_dump()


@router.put("/projects/{project_id}")
def update_project_route(project_id: str, payload: ProjectIn, user=Depends(get_current_user)):
    pid = parse_id(project_id, "project ID")
    fields = _project_fields(payload)
    if payload.target_deadline is not None:
        fields["target_deadline"] = _deadline_iso(payload.target_deadline)
    row = update_project(pid, user["id"], **fields)
    if row is None:
        raise NotFoundError("Project not found or you don't have permission to edit it")
    return Project.from_row(row).model_dump()
