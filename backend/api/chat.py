from typing import Any, AsyncIterator, Callable, Dict, List, Optional
import asyncio
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from config import settings
from models.db import (
    list_todos_db,
    list_sections,
    add_section_chat_message,
    get_section_chat_messages,
    add_planning_chat_message,
    get_planning_chat_messages,
)
from models.schemas import ChatMessage
from prompts import (
    TEST_CHAT_SYSTEM_PROMPT,
    build_section_system_prompt,
    build_planning_system_prompt,
    build_transcript,
)
from schemas.requests import ChatRequest
from tools import get_tool_schemas, call_tool
from utils.text import shorten
from .auth import get_current_user
from .common import get_generate_stream, require_idea, require_section, sse
from .errors import ValidationError


logger = logging.getLogger(__name__)
router = APIRouter()

HEARTBEAT_SECONDS = 15


def _latest_user_message(payload: ChatRequest) -> str:
    last = payload.messages[-1]
    text = payload.latest_user_message()
    if last.role != "user" or not text:
        raise ValidationError([{"loc": ["messages", len(payload.messages) - 1], "msg": "The last message must be a non-empty user message", "type": "value_error"}])
    return text


async def _relay_stream(
    info_event: Optional[Dict[str, Any]],
    stream_kwargs: Dict[str, Any],
    on_complete: Optional[Callable[[str], None]] = None,
) -> AsyncIterator[str]:
    """Forward model output as SSE frames and hand the full reply to on_complete.

    on_complete only runs when the stream finishes normally with some text;
    a failed stream leaves nothing persisted. A `: ping` comment is sent
    whenever the model stays silent for HEARTBEAT_SECONDS.
    """
    if info_event:
        yield sse(info_event)

    parts: List[str] = []
    stream = get_generate_stream()(**stream_kwargs)
    pending: Optional[asyncio.Future] = None
    try:
        while True:
            if pending is None:
                pending = asyncio.ensure_future(stream.__anext__())
            done, _ = await asyncio.wait({pending}, timeout=HEARTBEAT_SECONDS)
            if not done:
                yield ": ping\n\n"
                continue
            next_item, pending = pending, None
            try:
                data = next_item.result()
            except StopAsyncIteration:
                break

            if isinstance(data, dict):
                dtype = data.get("type")
                if dtype == "content" and data.get("content"):
                    parts.append(data["content"])
                    yield sse({"type": "token", "token": data["content"]})
                elif dtype == "tool_calls":
                    yield sse({"type": "tool_calls", "tool_calls": data.get("tool_calls", []) or []})
                elif dtype == "tool_result":
                    yield sse({
                        "type": "tool_result",
                        "id": data.get("id"),
                        "name": data.get("name"),
                        "content": data.get("content"),
                    })
                elif dtype == "thinking":
                    yield sse({"type": "thinking", "content": data.get("content")})
            elif isinstance(data, str) and data:
                parts.append(data)
                yield sse({"type": "token", "token": data})

        full_text = "".join(parts).strip()
        if full_text and on_complete is not None:
            on_complete(full_text)
    except Exception:
        logger.exception("Chat stream failed")
        yield sse({"type": "error", "error": "Failed to process chat message"})
    finally:
        # Client went away while the model was still producing
        if pending is not None:
            pending.cancel()
    yield sse({"type": "end"})


def _history_response(rows) -> Dict[str, Any]:
    return {"messages": [ChatMessage.from_row(r).model_dump(by_alias=True) for r in rows]}


@router.get("/step-sections/{section_id}/chat/history")
def section_chat_history(section_id: str, user=Depends(get_current_user)):
    section = require_section(section_id, user)
    return _history_response(get_section_chat_messages(section["id"]))


@router.post("/step-sections/{section_id}/chat")
async def section_chat(section_id: str, payload: ChatRequest, user=Depends(get_current_user)):
    section = require_section(section_id, user)
    sid = section["id"]
    user_message = _latest_user_message(payload)
    logger.info("Section %s chat from user %s: %s", sid, user["id"], shorten(user_message, 80))

    todos = list_todos_db(sid)
    history = get_section_chat_messages(sid, limit=settings.CHAT_HISTORY_LIMIT)

    # Persist before calling the model so the question survives a failed stream
    add_section_chat_message(sid, "user", user_message)

    system_prompt = build_section_system_prompt(
        section["idea_title"],
        section["title"],
        todos,
        section_description=section["description"],
        tools_enabled=payload.tools,
    )
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for row in history:
        msg = ChatMessage.from_row(row)
        messages.append({"role": msg.role, "content": msg.content})
    messages.append({"role": "user", "content": user_message})

    def execute_tool(fn: str, args: Dict[str, Any]) -> str:
        result = call_tool(fn, args, section_id=sid)
        logger.info("Section %s tool %s -> ok=%s", sid, fn, result.ok)
        return result.message

    stream_kwargs: Dict[str, Any] = {"prompt": user_message, "system": system_prompt, "seed_messages": messages}
    if payload.tools:
        stream_kwargs["tools"] = get_tool_schemas()
        stream_kwargs["execute_tool"] = execute_tool

    return StreamingResponse(
        _relay_stream(
            {"type": "section_info", "section_id": sid},
            stream_kwargs,
            on_complete=lambda text: add_section_chat_message(sid, "assistant", text),
        ),
        media_type="text/event-stream",
    )


@router.get("/steps/chat/history")
def planning_chat_history(ideaId: Optional[str] = Query(None), user=Depends(get_current_user)):
    idea = require_idea(ideaId, user)
    return _history_response(get_planning_chat_messages(idea["id"]))


@router.post("/steps/chat")
async def planning_chat(payload: ChatRequest, ideaId: Optional[str] = Query(None), user=Depends(get_current_user)):
    idea = require_idea(ideaId, user)
    iid = idea["id"]
    user_message = _latest_user_message(payload)

    window = get_planning_chat_messages(iid, limit=settings.PLANNING_HISTORY_WINDOW)
    transcript = build_transcript(
        (msg.role, msg.content) for msg in (ChatMessage.from_row(r) for r in window)
    )
    add_planning_chat_message(iid, "user", user_message)

    system_prompt = build_planning_system_prompt(
        idea["title"],
        idea["description"],
        [s["title"] for s in list_sections(iid)],
        transcript,
    )
    return StreamingResponse(
        _relay_stream(
            {"type": "idea_info", "idea_id": iid},
            {"prompt": user_message, "system": system_prompt},
            on_complete=lambda text: add_planning_chat_message(iid, "assistant", text),
        ),
        media_type="text/event-stream",
    )


@router.post("/test-chat")
async def test_chat(payload: ChatRequest, user=Depends(get_current_user)):
    user_message = _latest_user_message(payload)
    return StreamingResponse(
        _relay_stream(None, {"prompt": user_message, "system": TEST_CHAT_SYSTEM_PROMPT}),
        media_type="text/event-stream",
    )
