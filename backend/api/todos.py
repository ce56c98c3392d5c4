from typing import Optional

from fastapi import APIRouter, Depends, Query

from models.db import list_todos_db, get_todo_for_user
from models.schemas import StepTodo
from schemas.requests import TodoCreate, TodoUpdate
from tools import create_todo, update_todo, delete_todo
from .auth import get_current_user
from .common import require_section
from .errors import NotFoundError, ValidationError, parse_id


router = APIRouter()


def _require_todo(todo_id: str, user):
    tid = parse_id(todo_id, "todo ID")
    row = get_todo_for_user(tid, user["id"])
    if row is None:
        raise NotFoundError("Todo not found")
    return row


@router.get("/step-todos")
def list_todos_route(sectionId: Optional[str] = Query(None), user=Depends(get_current_user)):
    section = require_section(sectionId, user)
    rows = list_todos_db(section["id"])
    return {"success": True, "data": [StepTodo.from_row(r).model_dump(by_alias=True) for r in rows]}


@router.post("/step-todos", status_code=201)
def create_todo_route(payload: TodoCreate, user=Depends(get_current_user)):
    section = require_section(payload.section_id, user)
    res = create_todo(section["id"], payload.title, payload.description)
    if not res.ok:
        raise ValidationError(res.message)
    return {"success": True, "data": res.todo, "sectionCompleted": res.section_completed}


@router.patch("/step-todos/{todo_id}")
def update_todo_route(todo_id: str, payload: TodoUpdate, user=Depends(get_current_user)):
    todo = _require_todo(todo_id, user)
    res = update_todo(
        todo["section_id"],
        todo["id"],
        title=payload.title,
        description=payload.description,
        is_completed=payload.is_completed,
        order=payload.order,
    )
    if not res.ok:
        raise ValidationError(res.message)
    return {"success": True, "data": res.todo, "sectionCompleted": res.section_completed}


@router.delete("/step-todos/{todo_id}")
def delete_todo_route(todo_id: str, user=Depends(get_current_user)):
    todo = _require_todo(todo_id, user)
    res = delete_todo(todo["section_id"], todo["id"])
    if not res.ok:
        raise NotFoundError(res.message)
    return {"success": True, "sectionCompleted": res.section_completed}
