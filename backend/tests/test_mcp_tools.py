from __future__ import annotations

import asyncio

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from api.mcp_server import (
    create_mcp_server,
    create_section_todo,
    echo,
    list_section_todos,
    section_chat_history,
)
from models.db import add_todo_db, add_section_chat_message, list_todos_db


def test_server_registers_four_tools():
    mcp = create_mcp_server()
    names = {t.name for t in asyncio.run(mcp.list_tools())}
    assert names == {"echo", "getSectionChatHistory", "listSectionTodos", "createSectionTodo"}


def test_echo():
    assert echo("ping") == {"text": "Tool echo: ping"}


def test_tools_require_session(section):
    with pytest.raises(ToolError, match="Unauthorized"):
        list_section_todos(None, str(section["id"]))
    with pytest.raises(ToolError, match="Unauthorized"):
        create_section_todo("Bearer bogus", str(section["id"]), "x")


def test_tools_require_section_id(user):
    auth = f"Bearer {user['token']}"
    with pytest.raises(ToolError, match="Section ID is required"):
        section_chat_history(auth, "")
    with pytest.raises(ToolError, match="Section ID and title are required"):
        create_section_todo(auth, "1", "")


def test_list_and_create_todos(user, section):
    auth = f"Bearer {user['token']}"
    sid = str(section["id"])
    add_todo_db(section["id"], "existing")

    listed = list_section_todos(auth, sid)
    assert listed["text"] == "Found 1 todos."
    assert listed["todos"][0]["title"] == "existing"

    created = create_section_todo(auth, sid, "from mcp", "via tool")
    assert created["text"] == "Todo created: from mcp"
    assert created["todo"]["order"] == 2
    assert [t["title"] for t in list_todos_db(section["id"])] == ["existing", "from mcp"]


def test_chat_history_tool(user, other_user, section):
    add_section_chat_message(section["id"], "user", "hi")
    add_section_chat_message(section["id"], "assistant", "hello")
    out = section_chat_history(f"Bearer {user['token']}", str(section["id"]))
    assert [m["role"] for m in out["messages"]] == ["user", "assistant"]
    with pytest.raises(ToolError, match="Section not found"):
        section_chat_history(f"Bearer {other_user['token']}", str(section["id"]))
