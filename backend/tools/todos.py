from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from models.db import (
    list_todos_db,
    get_todo,
    add_todo_db,
    update_todo_db,
    delete_todo_db,
    recompute_section_completion,
)
from models.schemas import StepTodo


logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    """Outcome of a todo action. `message` is the text shown to the model."""

    ok: bool
    message: str
    todo: Optional[Dict[str, Any]] = None
    todos: Optional[List[Dict[str, Any]]] = None
    section_completed: Optional[bool] = None


def _dump(row) -> Dict[str, Any]:
    return StepTodo.from_row(row).model_dump(by_alias=True)


def format_todo_line(index: int, title: str, description: Optional[str], is_completed: bool) -> str:
    desc = f" ({description})" if description else ""
    return f"{index}. {title}{desc} {'✅' if is_completed else '⏳'}"


def format_todo_lines(rows) -> List[str]:
    return [
        format_todo_line(i + 1, r["title"], r["description"], bool(r["is_completed"]))
        for i, r in enumerate(rows)
    ]


def get_current_todos(section_id: int) -> ToolResult:
    rows = list_todos_db(section_id)
    if not rows:
        return ToolResult(ok=True, message="No todos found in this section.", todos=[])
    lines = [
        f"{line} [id: {r['id']}]" for line, r in zip(format_todo_lines(rows), rows)
    ]
    return ToolResult(
        ok=True,
        message="Current todos:\n" + "\n".join(lines),
        todos=[_dump(r) for r in rows],
    )


def create_todo(section_id: int, title: str, description: Optional[str] = None) -> ToolResult:
    title = (title or "").strip()
    if not title:
        return ToolResult(ok=False, message="Cannot create a todo without a title.")
    todo_id = add_todo_db(section_id, title, description or None)
    completed = recompute_section_completion(section_id)
    row = get_todo(todo_id)
    return ToolResult(
        ok=True,
        message=f'Created todo "{title}" (ID: {todo_id}).',
        todo=_dump(row),
        section_completed=completed,
    )


def update_todo(
    section_id: int,
    todo_id: int,
    title: Optional[str] = None,
    description: Optional[str] = None,
    is_completed: Optional[bool] = None,
    order: Optional[int] = None,
) -> ToolResult:
    if title is not None and not title.strip():
        return ToolResult(ok=False, message="Todo title cannot be empty.")
    existing = get_todo(todo_id, section_id=section_id)
    if existing is None:
        return ToolResult(ok=False, message=f"Todo with ID {todo_id} not found in this section.")
    update_todo_db(
        todo_id,
        section_id=section_id,
        title=title.strip() if title is not None else None,
        description=description,
        is_completed=is_completed,
        order=order,
    )
    completed = recompute_section_completion(section_id)
    row = get_todo(todo_id)
    return ToolResult(
        ok=True,
        message=f'Updated todo "{row["title"]}" (ID: {todo_id}).',
        todo=_dump(row),
        section_completed=completed,
    )


def delete_todo(section_id: int, todo_id: int) -> ToolResult:
    existing = get_todo(todo_id, section_id=section_id)
    if existing is None:
        return ToolResult(ok=False, message=f"Todo with ID {todo_id} not found in this section.")
    delete_todo_db(todo_id, section_id=section_id)
    completed = recompute_section_completion(section_id)
    return ToolResult(
        ok=True,
        message=f'Deleted todo "{existing["title"]}" (ID: {todo_id}).',
        todo=_dump(existing),
        section_completed=completed,
    )


__all__ = [
    "ToolResult",
    "format_todo_line",
    "format_todo_lines",
    "get_current_todos",
    "create_todo",
    "update_todo",
    "delete_todo",
]
