"""
MCP tool surface for machine callers.

Exposes echo, section chat history, section todo listing and todo creation.
Every tool except echo requires the same bearer-token session as the HTTP API.
"""

import logging
import sqlite3
from typing import Any, Dict, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from models.db import get_section_chat_messages, get_section_for_user, list_todos_db
from models.schemas import ChatMessage, StepTodo
from tools import create_todo
from .auth import resolve_user


logger = logging.getLogger(__name__)

SERVER_NAME = "buildfast"


def _authorization_from(ctx: Optional[Context]) -> Optional[str]:
    if ctx is None:
        return None
    try:
        request = ctx.request_context.request
    except (AttributeError, ValueError, LookupError):
        return None
    if request is None:
        return None
    return request.headers.get("authorization")


def _require_user(authorization: Optional[str]) -> sqlite3.Row:
    user = resolve_user(authorization)
    if user is None:
        raise ToolError("Unauthorized")
    return user


def _require_section(section_id: Optional[str], user: sqlite3.Row) -> sqlite3.Row:
    if not section_id or not str(section_id).strip():
        raise ToolError("Section ID is required")
    try:
        sid = int(str(section_id).strip())
    except ValueError:
        raise ToolError("Section ID must be a number")
    section = get_section_for_user(sid, user["id"])
    if section is None:
        raise ToolError("Section not found")
    return section


def echo(message: str) -> Dict[str, Any]:
    return {"text": f"Tool echo: {message}"}


def section_chat_history(authorization: Optional[str], section_id: str) -> Dict[str, Any]:
    user = _require_user(authorization)
    section = _require_section(section_id, user)
    messages = [ChatMessage.from_row(r).model_dump(by_alias=True) for r in get_section_chat_messages(section["id"])]
    return {"text": f"Found {len(messages)} messages.", "messages": messages}


def list_section_todos(authorization: Optional[str], section_id: str) -> Dict[str, Any]:
    user = _require_user(authorization)
    section = _require_section(section_id, user)
    todos = [StepTodo.from_row(r).model_dump(by_alias=True) for r in list_todos_db(section["id"])]
    return {"text": f"Found {len(todos)} todos.", "todos": todos}


def create_section_todo(
    authorization: Optional[str],
    section_id: str,
    title: str,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    user = _require_user(authorization)
    if not title or not title.strip():
        raise ToolError("Section ID and title are required")
    section = _require_section(section_id, user)
    result = create_todo(section["id"], title, description)
    if not result.ok:
        raise ToolError(result.message)
    logger.info("MCP created todo %s in section %s", result.todo and result.todo.get("id"), section["id"])
    return {"text": f"Todo created: {result.todo['title']}", "todo": result.todo}


def create_mcp_server() -> FastMCP:
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool(name="echo")
    def echo_tool(message: str) -> dict:
        """Echo a message back (connectivity check)."""
        return echo(message)

    @mcp.tool(name="getSectionChatHistory")
    def get_section_chat_history_tool(sectionId: str, ctx: Context) -> dict:
        """Return a section's chat history, oldest first."""
        return section_chat_history(_authorization_from(ctx), sectionId)

    @mcp.tool(name="listSectionTodos")
    def list_section_todos_tool(sectionId: str, ctx: Context) -> dict:
        """List the todos of a section in display order."""
        return list_section_todos(_authorization_from(ctx), sectionId)

    @mcp.tool(name="createSectionTodo")
    def create_section_todo_tool(sectionId: str, title: str, ctx: Context, description: Optional[str] = None) -> dict:
        """Create a todo at the end of a section's list."""
        return create_section_todo(_authorization_from(ctx), sectionId, title, description)

    return mcp
