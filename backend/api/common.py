from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict

from models.db import get_section_for_user, get_idea_for_user
from .errors import NotFoundError, parse_id


def get_generate_stream():
    """Return the streaming function used by chat routes.

    Tests monkeypatch `router.generate_stream`; fetch it from `router` when
    available, otherwise fall back to the implementation in `llm`.
    """
    try:
        import router as router_module  # type: ignore

        gs = getattr(router_module, "generate_stream", None)
        if callable(gs):
            return gs
    except ImportError:
        pass
    from llm import generate_stream as real_generate_stream  # lazy import to avoid cycles

    return real_generate_stream


def require_section(raw_id: Any, user: sqlite3.Row) -> sqlite3.Row:
    """Parse a section id and load it for the current user, or raise 400/404."""
    section_id = parse_id(raw_id, "section ID")
    section = get_section_for_user(section_id, user["id"])
    if section is None:
        raise NotFoundError("Section not found")
    return section


def require_idea(raw_id: Any, user: sqlite3.Row) -> sqlite3.Row:
    idea_id = parse_id(raw_id, "idea ID")
    idea = get_idea_for_user(idea_id, user["id"])
    if idea is None:
        raise NotFoundError("Idea not found")
    return idea


def sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"
