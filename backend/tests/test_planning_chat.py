from __future__ import annotations

import json

from fastapi.testclient import TestClient

from models.db import add_planning_chat_message, get_planning_chat_messages


def _stream_events(client, url, body, headers, params=None):
    with client.stream("POST", url, json=body, headers=headers, params=params) as r:
        assert r.status_code == 200
        events = []
        for raw_line in r.iter_lines():
            line = raw_line.decode("utf-8", "ignore") if isinstance(raw_line, (bytes, bytearray)) else raw_line
            if line.startswith("data: "):
                events.append(json.loads(line[6:]))
        return events


def test_planning_history_requires_idea_id(client: TestClient, user):
    assert client.get("/api/steps/chat/history", headers=user["headers"]).status_code == 400
    assert client.get("/api/steps/chat/history", params={"ideaId": "x1"}, headers=user["headers"]).status_code == 400


def test_planning_history(client: TestClient, user, section):
    iid = section["idea_id"]
    add_planning_chat_message(iid, "user", "Plan it")
    add_planning_chat_message(iid, "assistant", "Step 1: schema")
    r = client.get("/api/steps/chat/history", params={"ideaId": iid}, headers=user["headers"])
    assert r.status_code == 200
    assert [(m["role"], m["content"]) for m in r.json()["messages"]] == [
        ("user", "Plan it"),
        ("assistant", "Step 1: schema"),
    ]


def test_planning_chat_uses_trailing_window(client: TestClient, user, section, monkeypatch):
    import router as router_module

    iid = section["idea_id"]
    for i in range(12):
        add_planning_chat_message(iid, "user" if i % 2 == 0 else "assistant", f"m{i}")
    captured = {}

    async def fake_stream(prompt: str, **kwargs):
        captured["prompt"] = prompt
        captured.update(kwargs)
        yield {"type": "content", "content": "Add a deploy section."}

    monkeypatch.setattr(router_module, "generate_stream", fake_stream)
    body = {"messages": [{"role": "user", "content": "Anything missing?"}]}
    events = _stream_events(client, "/api/steps/chat", body, user["headers"], params={"ideaId": iid})
    assert events[0] == {"type": "idea_info", "idea_id": iid}

    system = captured["system"]
    assert "User: m2" in system and "Assistant: m11" in system
    assert "m1\n" not in system and "User: m0" not in system
    assert system.index("m2") < system.index("m11")
    assert "1. Backend API" in system
    assert captured["prompt"] == "Anything missing?"
    assert "tools" not in captured

    rows = get_planning_chat_messages(iid)
    assert [(r["role"], r["message"]) for r in rows[-2:]] == [
        ("user", "Anything missing?"),
        ("assistant", "Add a deploy section."),
    ]


def test_test_chat_is_a_passthrough(client: TestClient, user, section, monkeypatch):
    import router as router_module

    captured = {}

    async def fake_stream(prompt: str, **kwargs):
        captured["prompt"] = prompt
        captured.update(kwargs)
        yield {"type": "content", "content": "Hello!"}

    monkeypatch.setattr(router_module, "generate_stream", fake_stream)
    body = {"messages": [{"role": "user", "content": "earlier"}, {"role": "assistant", "content": "x"}, {"role": "user", "content": "Hi"}]}
    events = _stream_events(client, "/api/test-chat", body, user["headers"])
    assert [e["token"] for e in events if e["type"] == "token"] == ["Hello!"]
    assert captured["prompt"] == "Hi"
    assert "seed_messages" not in captured
    assert get_planning_chat_messages(section["idea_id"]) == []
