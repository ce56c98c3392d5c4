from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .todos import ToolResult, create_todo, update_todo, delete_todo, get_current_todos


logger = logging.getLogger(__name__)


def get_tool_schemas() -> List[Dict[str, Any]]:
    """OpenAI function schemas for the section todo tools.

    The section id is injected by the runtime and is deliberately absent here.
    """
    return [
        {
            "type": "function",
            "function": {
                "name": "createTodo",
                "description": "Create a new task in the current section's to-do list. Use it when the user asks to add a task.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string", "description": "Short title of the task"},
                        "description": {"type": "string", "description": "Optional details"},
                    },
                    "required": ["title"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": "updateTodo",
                "description": "Update an existing task. Only the supplied fields change. Use it to rename a task or mark it done/undone.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "todoId": {"type": "integer", "description": "ID of the task"},
                        "title": {"type": "string"},
                        "description": {"type": "string"},
                        "isCompleted": {"type": "boolean"},
                    },
                    "required": ["todoId"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": "deleteTodo",
                "description": "Delete a task from the current section by its ID.",
                "parameters": {
                    "type": "object",
                    "properties": {"todoId": {"type": "integer", "description": "ID of the task"}},
                    "required": ["todoId"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": "getCurrentTodos",
                "description": "List all tasks in the current section with their IDs and status.",
                "parameters": {"type": "object", "properties": {}, "required": []},
            },
        },
    ]


TOOL_NAMES = tuple(s["function"]["name"] for s in get_tool_schemas())


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
    if isinstance(value, int):
        return bool(value)
    return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _dispatch(function_name: str, arguments: Dict[str, Any], section_id: int) -> ToolResult:
    if function_name == "getCurrentTodos":
        return get_current_todos(section_id)
    if function_name == "createTodo":
        return create_todo(
            section_id,
            _optional_str(arguments.get("title")) or "",
            _optional_str(arguments.get("description")),
        )
    if function_name in ("updateTodo", "deleteTodo"):
        todo_id = _as_int(arguments.get("todoId"))
        if todo_id is None:
            return ToolResult(ok=False, message=f"{function_name} requires an integer todoId.")
        if function_name == "deleteTodo":
            return delete_todo(section_id, todo_id)
        return update_todo(
            section_id,
            todo_id,
            title=_optional_str(arguments.get("title")),
            description=_optional_str(arguments.get("description")),
            is_completed=_as_bool(arguments.get("isCompleted")),
        )
    return ToolResult(ok=False, message=f"Unknown function: {function_name}")


def call_tool(function_name: str, arguments: Optional[Dict[str, Any]], section_id: int) -> ToolResult:
    """Execute a todo tool for a section. Failures come back as a failed result, never raised."""
    try:
        return _dispatch(function_name, arguments or {}, section_id)
    except Exception as e:
        logger.warning("Tool %s failed for section %s: %s", function_name, section_id, e)
        return ToolResult(ok=False, message=f"Error executing {function_name}: {e}")


__all__ = [
    "TOOL_NAMES",
    "get_tool_schemas",
    "call_tool",
]
