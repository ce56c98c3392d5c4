from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

import llm
from tools import call_tool


def _chunk(content=None, tool_calls=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def _tool_fragment(index, call_id=None, name=None, arguments=None):
    return SimpleNamespace(index=index, id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


async def _chunks(items):
    for item in items:
        yield item


class FakeCompletions:
    """Replays one scripted reply per create() call and records each request."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append({**kwargs, "messages": list(kwargs["messages"])})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if kwargs.get("stream"):
            return _chunks(reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


@pytest.fixture
def fake_llm(monkeypatch):
    def install(*replies):
        completions = FakeCompletions(replies)
        monkeypatch.setattr(llm, "client", SimpleNamespace(chat=SimpleNamespace(completions=completions)))
        return completions

    return install


def _collect(**kwargs):
    async def run():
        return [event async for event in llm.generate_stream(**kwargs)]

    return asyncio.run(run())


TOOLS = [{"type": "function", "function": {"name": "deleteTodo", "parameters": {}}}]


def test_plain_reply_streams_content(fake_llm):
    completions = fake_llm([_chunk("Hello "), _chunk("there")])
    events = _collect(prompt="hi", system="Be brief.")
    assert events == [{"type": "content", "content": "Hello "}, {"type": "content", "content": "there"}]
    sent = completions.calls[0]
    assert sent["messages"] == [{"role": "system", "content": "Be brief."}, {"role": "user", "content": "hi"}]
    assert "tools" not in sent


def test_split_tool_call_is_merged_and_results_fed_back(fake_llm):
    completions = fake_llm(
        [
            _chunk(tool_calls=[_tool_fragment(0, "call_1", "deleteTodo", '{"todo')]),
            _chunk(tool_calls=[_tool_fragment(0, arguments='Id": 3}')]),
        ],
        [_chunk("Deleted it.")],
    )
    executed = []

    def execute_tool(fn, args):
        executed.append((fn, args))
        return 'Deleted todo "three" (ID: 3).'

    events = _collect(prompt="delete task 3", tools=TOOLS, execute_tool=execute_tool)

    assert executed == [("deleteTodo", {"todoId": 3})]
    assert [e["type"] for e in events] == ["tool_calls", "tool_result", "content"]
    assert events[0]["tool_calls"] == [{"id": "call_1", "name": "deleteTodo", "arguments": '{"todoId": 3}'}]
    assert events[1] == {"type": "tool_result", "id": "call_1", "name": "deleteTodo", "content": 'Deleted todo "three" (ID: 3).'}

    second = completions.calls[1]["messages"]
    assert second[-2]["role"] == "assistant"
    assert second[-2]["tool_calls"][0]["function"] == {"name": "deleteTodo", "arguments": '{"todoId": 3}'}
    assert second[-1] == {"role": "tool", "tool_call_id": "call_1", "content": 'Deleted todo "three" (ID: 3).'}


def test_tools_withdrawn_after_round_limit(fake_llm):
    completions = fake_llm(
        [_chunk(tool_calls=[_tool_fragment(0, "call_1", "deleteTodo", '{"todoId": 1}')])],
        [_chunk("No more tools.")],
    )
    events = _collect(prompt="go", tools=TOOLS, execute_tool=lambda fn, args: "ok", max_tool_rounds=1)
    assert "tools" in completions.calls[0]
    assert "tools" not in completions.calls[1]
    assert events[-1] == {"type": "content", "content": "No more tools."}


def test_malformed_arguments_become_soft_failure(fake_llm, section):
    fake_llm(
        [_chunk(tool_calls=[_tool_fragment(0, "call_1", "deleteTodo", "{not json")])],
        [_chunk("Sorry, which task?")],
    )
    seen = []

    def execute_tool(fn, args):
        seen.append(args)
        return call_tool(fn, args, section_id=section["id"]).message

    events = _collect(prompt="delete it", tools=TOOLS, execute_tool=execute_tool)
    assert seen == [{}]
    result = next(e for e in events if e["type"] == "tool_result")
    assert result["content"] == "deleteTodo requires an integer todoId."
    assert events[-1]["content"] == "Sorry, which task?"


def test_empty_stream_retries_without_streaming(fake_llm):
    completions = fake_llm(
        [SimpleNamespace(choices=[]), _chunk(content=None)],
        "Fallback reply",
    )
    events = _collect(prompt="hi")
    assert events == [{"type": "content", "content": "Fallback reply"}]
    assert completions.calls[1]["stream"] is False


def test_provider_errors_propagate(fake_llm):
    fake_llm(RuntimeError("upstream 503"))
    with pytest.raises(RuntimeError, match="upstream 503"):
        _collect(prompt="hi")
