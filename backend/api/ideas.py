from fastapi import APIRouter, Depends

from models.db import create_idea, get_project, list_ideas, update_idea, get_idea_for_user
from models.schemas import Idea
from schemas.requests import IdeaCreate, IdeaUpdate
from .auth import get_current_user
from .common import require_idea
from .errors import NotFoundError, parse_id


router = APIRouter()


def _require_project(project_id: str, user):
    pid = parse_id(project_id, "project ID")
    if get_project(pid, user["id"]) is None:
        raise NotFoundError("Project not found")
    return pid


@router.get("/projects/{project_id}/ideas")
def list_ideas_route(project_id: str, user=Depends(get_current_user)):
    pid = _require_project(project_id, user)
    return {"ideas": [Idea.from_row(r).model_dump(by_alias=True) for r in list_ideas(pid)]}


@router.post("/projects/{project_id}/ideas", status_code=201)
def create_idea_route(project_id: str, payload: IdeaCreate, user=Depends(get_current_user)):
    pid = _require_project(project_id, user)
    idea_id = create_idea(pid, payload.title, payload.description, payload.content, payload.is_final)
    return Idea.from_row(get_idea_for_user(idea_id, user["id"])).model_dump(by_alias=True)


@router.get("/ideas/{idea_id}")
def get_idea_route(idea_id: str, user=Depends(get_current_user)):
    return Idea.from_row(require_idea(idea_id, user)).model_dump(by_alias=True)


@router.patch("/ideas/{idea_id}")
def update_idea_route(idea_id: str, payload: IdeaUpdate, user=Depends(get_current_user)):
    idea = require_idea(idea_id, user)
    update_idea(
        idea["id"],
        title=payload.title,
        description=payload.description,
        content=payload.content,
        is_final=payload.is_final,
    )
    return Idea.from_row(get_idea_for_user(idea["id"], user["id"])).model_dump(by_alias=True)
