from typing import Dict, AsyncGenerator, Union, List, Any, Callable, Optional
import json
import logging

from openai import AsyncOpenAI

from config import settings


logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# Configuration – any OpenAI-compatible endpoint (OpenRouter by default)
# ---------------------------------------------------------
current_model = settings.LLM_MODEL

# HTTP client (OpenAI-compatible), created on first use
client: Optional[AsyncOpenAI] = None


def get_client() -> AsyncOpenAI:
    global client
    if client is None:
        client = AsyncOpenAI(base_url=settings.LLM_BASE_URL, api_key=settings.LLM_API_KEY)
    return client


def _delta_field(delta: Any, name: str) -> Any:
    value = getattr(delta, name, None)
    if value is None and isinstance(delta, dict):
        value = delta.get(name)
    return value


def _collect_tool_call_deltas(
    tool_calls_delta: Any,
    names: Dict[int, str],
    args: Dict[int, str],
    ids: Dict[int, str],
) -> None:
    """Merge one chunk of streamed tool-call fragments into the per-index buffers."""
    for tc in tool_calls_delta:
        idx = _delta_field(tc, "index")
        if idx is None:
            continue
        func = _delta_field(tc, "function")
        tc_id = _delta_field(tc, "id")
        if func is not None:
            name_val = _delta_field(func, "name")
            args_val = _delta_field(func, "arguments")
            if name_val:
                names[idx] = name_val
            if args_val:
                args[idx] = args.get(idx, "") + args_val
        if tc_id:
            ids[idx] = tc_id


async def generate_stream(
    prompt: str,
    system: str = "",
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    tools: Optional[List[Dict[str, Any]]] = None,
    execute_tool: Optional[Callable[[str, Dict[str, Any]], Any]] = None,
    max_tool_rounds: Optional[int] = None,
    # When provided, use these chat messages directly (system/user/assistant history)
    # instead of constructing from prompt/system.
    seed_messages: Optional[List[Dict[str, Any]]] = None,
) -> AsyncGenerator[Union[str, Dict], None]:
    """
    Async generator over a streamed chat completion.

    Yields {"type": "content"} and {"type": "thinking"} fragments as they
    arrive. When the model requests tools, yields {"type": "tool_calls"},
    runs each call through execute_tool, yields {"type": "tool_result"} and
    starts another round with the results appended to the conversation.
    """
    temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
    max_tokens = settings.LLM_MAX_TOKENS if max_tokens is None else max_tokens
    max_tool_rounds = settings.LLM_MAX_TOOL_ROUNDS if max_tool_rounds is None else max_tool_rounds

    messages: List[Dict[str, Any]] = []
    if seed_messages:
        messages = list(seed_messages)
    else:
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

    llm = get_client()
    round_index = 0
    try:
        while True:
            round_index += 1
            # Once the tool budget is spent, ask for a plain answer
            offer_tools = bool(tools) and round_index <= max_tool_rounds
            request: Dict[str, Any] = {
                "model": current_model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "stream": True,
            }
            if offer_tools:
                request["tools"] = tools
                request["tool_choice"] = "auto"
            response = await llm.chat.completions.create(**request)

            tool_calls_args: Dict[int, str] = {}
            tool_calls_names: Dict[int, str] = {}
            tool_calls_ids: Dict[int, str] = {}
            any_content_this_round = False

            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if settings.DEBUG_STREAM:
                    logger.debug("[stream] chunk: %s", chunk)

                reasoning_text = _delta_field(delta, "reasoning") or _delta_field(delta, "reasoning_content")
                content_text = _delta_field(delta, "content")

                if reasoning_text and not any_content_this_round:
                    yield {"type": "thinking", "content": reasoning_text}
                if content_text:
                    any_content_this_round = True
                    yield {"type": "content", "content": content_text}

                tool_calls_delta = _delta_field(delta, "tool_calls")
                if tool_calls_delta:
                    _collect_tool_call_deltas(tool_calls_delta, tool_calls_names, tool_calls_args, tool_calls_ids)

            if tool_calls_names and execute_tool and offer_tools:
                tool_calls_list = []
                for idx in sorted(tool_calls_names):
                    tool_calls_list.append({
                        "id": tool_calls_ids.get(idx, f"call_{round_index}_{idx}"),
                        "type": "function",
                        "function": {"name": tool_calls_names[idx], "arguments": tool_calls_args.get(idx) or "{}"},
                    })
                messages.append({"role": "assistant", "content": "", "tool_calls": tool_calls_list})

                yield {"type": "tool_calls", "tool_calls": [
                    {
                        "id": tc["id"],
                        "name": tc["function"]["name"],
                        "arguments": tc["function"]["arguments"],
                    } for tc in tool_calls_list
                ]}

                for tc in tool_calls_list:
                    fn = tc["function"]["name"]
                    try:
                        args = json.loads(tc["function"]["arguments"])
                    except json.JSONDecodeError:
                        args = {}
                    if not isinstance(args, dict):
                        args = {}
                    result = execute_tool(fn, args)
                    content = result if isinstance(result, str) else json.dumps(result, ensure_ascii=False)
                    yield {"type": "tool_result", "id": tc["id"], "name": fn, "content": content}
                    messages.append({"role": "tool", "tool_call_id": tc["id"], "content": content})
                continue

            # Some providers return an empty stream; retry once without streaming
            if not any_content_this_round and not tool_calls_names:
                fallback = await llm.chat.completions.create(
                    model=current_model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    stream=False,
                )
                content = fallback.choices[0].message.content or ""
                if content:
                    yield {"type": "content", "content": content}
            break

    except Exception as e:
        logger.error("LLM request failed (model=%s, base_url=%s): %s", current_model, settings.LLM_BASE_URL, e)
        raise
