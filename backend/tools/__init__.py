from __future__ import annotations

# Public API facade for tools

from .todos import (
    ToolResult,
    format_todo_line,
    format_todo_lines,
    get_current_todos,
    create_todo,
    update_todo,
    delete_todo,
)
from .registry import TOOL_NAMES, get_tool_schemas, call_tool


__all__ = [
    "ToolResult",
    "format_todo_line",
    "format_todo_lines",
    "get_current_todos",
    "create_todo",
    "update_todo",
    "delete_todo",
    "TOOL_NAMES",
    "get_tool_schemas",
    "call_tool",
]
