"""LLM client — ABC, OpenAI implementation, and mocks."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Sequence, Union

from advisor_engine.engine.errors import BackendError
from advisor_engine.engine.models import (
    ChatResponse,
    Message,
    Request,
    ResponseFragment,
    Role,
    ToolCallRequest,
    Usage,
)

logger = logging.getLogger(__name__)


class LLMClient(ABC):
    """Model backend adapter.

    ``generate`` returns one complete response; ``stream`` yields fragments
    for the same request. Both report tool calls via ``tool_calls`` rather
    than as content.
    """

    @abstractmethod
    async def generate(self, request: Request) -> ChatResponse: ...

    @abstractmethod
    def stream(self, request: Request) -> AsyncIterator[ResponseFragment]: ...


def simulate_stream(response: ChatResponse) -> list[ResponseFragment]:
    """Split a complete response into word-level fragments.

    Tool calls, finish reason and usage ride on the last fragment, so
    ``ChatResponse.from_fragments`` rebuilds the same content.
    """
    fragments: list[ResponseFragment] = []
    if response.content:
        words = response.content.split(" ")
        for i, word in enumerate(words):
            fragments.append(ResponseFragment(content=word if i == len(words) - 1 else word + " "))
    tail = {"tool_calls": response.tool_calls, "finish_reason": response.finish_reason, "usage": response.usage}
    if fragments:
        fragments[-1] = fragments[-1].model_copy(update=tail)
    else:
        fragments.append(ResponseFragment(**tail))
    return fragments


# ---------------------------------------------------------------------------
# OpenAI implementation
# ---------------------------------------------------------------------------

def to_openai_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    converted: list[dict[str, Any]] = []
    for m in messages:
        if m.role is Role.TOOL:
            converted.append({"role": "tool", "tool_call_id": m.tool_call_id, "content": m.content or ""})
        elif m.role is Role.ASSISTANT and m.tool_calls:
            converted.append({
                "role": "assistant",
                "content": m.content,
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                    }
                    for tc in m.tool_calls
                ],
            })
        else:
            converted.append({"role": m.role.value, "content": m.content or ""})
    return converted


def _parse_arguments(name: str, raw: str | None) -> dict[str, Any]:
    try:
        parsed = json.loads(raw or "{}")
    except json.JSONDecodeError as exc:
        raise BackendError(f"Model sent malformed arguments for tool '{name}'") from exc
    if not isinstance(parsed, dict):
        raise BackendError(f"Model sent non-object arguments for tool '{name}'")
    return parsed


def _usage(raw: Any) -> Usage | None:
    if raw is None:
        return None
    return Usage(
        prompt_tokens=getattr(raw, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(raw, "completion_tokens", 0) or 0,
        total_tokens=getattr(raw, "total_tokens", 0) or 0,
    )


class OpenAILLMClient(LLMClient):
    def __init__(self, api_key: str | None = None, model: str = "gpt-4o-mini") -> None:
        # Late import so the rest of the package works without openai installed
        from openai import AsyncOpenAI

        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model

    def _kwargs(self, request: Request) -> dict[str, Any]:
        opts = request.options
        kwargs: dict[str, Any] = {
            "model": opts.model or self._model,
            "messages": to_openai_messages(request.messages),
        }
        if opts.temperature is not None:
            kwargs["temperature"] = opts.temperature
        if opts.max_tokens is not None:
            kwargs["max_completion_tokens"] = opts.max_tokens
        if opts.top_p is not None:
            kwargs["top_p"] = opts.top_p
        if opts.stop:
            kwargs["stop"] = list(opts.stop)
        if request.tools:
            kwargs["tools"] = [
                {
                    "type": "function",
                    "function": {"name": t.name, "description": t.description, "parameters": t.parameters},
                }
                for t in request.tools
            ]
        elif request.output_schema and request.output_schema.get("type") == "object":
            kwargs["response_format"] = {"type": "json_object"}
        kwargs.update(opts.extra)
        return kwargs

    async def generate(self, request: Request) -> ChatResponse:
        response = await self._client.chat.completions.create(**self._kwargs(request))
        choice = response.choices[0]
        usage = _usage(response.usage)

        if choice.message.tool_calls:
            tc_list = tuple(
                ToolCallRequest(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=_parse_arguments(tc.function.name, tc.function.arguments),
                )
                for tc in choice.message.tool_calls
            )
            return ChatResponse(tool_calls=tc_list, finish_reason=choice.finish_reason, usage=usage)

        return ChatResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason,
            usage=usage,
            metadata={"model": response.model, "id": response.id},
        )

    async def stream(self, request: Request) -> AsyncIterator[ResponseFragment]:
        stream = await self._client.chat.completions.create(
            **self._kwargs(request),
            stream=True,
            stream_options={"include_usage": True},
        )
        # Tool call deltas arrive in pieces keyed by index; emit them whole at the end.
        partial: dict[int, dict[str, Any]] = {}
        finish_reason: str | None = None
        usage: Usage | None = None
        async for chunk in stream:
            if chunk.usage is not None:
                usage = _usage(chunk.usage)
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            finish_reason = choice.finish_reason or finish_reason
            delta = choice.delta
            for tc in delta.tool_calls or ():
                slot = partial.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                if tc.id:
                    slot["id"] = tc.id
                if tc.function is not None:
                    slot["name"] += tc.function.name or ""
                    slot["arguments"] += tc.function.arguments or ""
            if delta.content:
                yield ResponseFragment(content=delta.content)

        tool_calls = tuple(
            ToolCallRequest(id=s["id"], name=s["name"], arguments=_parse_arguments(s["name"], s["arguments"]))
            for _, s in sorted(partial.items())
        )
        yield ResponseFragment(tool_calls=tool_calls, finish_reason=finish_reason, usage=usage)


# ---------------------------------------------------------------------------
# Test mock: deterministic, pre-loaded responses
# ---------------------------------------------------------------------------

Scripted = Union[ChatResponse, Exception]


class MockLLMClient(LLMClient):
    """Returns pre-configured responses in order. Used in unit tests.

    An ``Exception`` in the script is raised instead of returned. Every
    received request is kept in ``requests``.
    """

    def __init__(self, responses: Sequence[Scripted], delay: float = 0.0) -> None:
        self._responses = list(responses)
        self._call_index = 0
        self._delay = delay
        self.requests: list[Request] = []

    async def _next(self, request: Request) -> ChatResponse:
        self.requests.append(request)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._call_index >= len(self._responses):
            return ChatResponse(content="[mock responses exhausted]", finish_reason="stop")
        scripted = self._responses[self._call_index]
        self._call_index += 1
        if isinstance(scripted, Exception):
            raise scripted
        return scripted

    async def generate(self, request: Request) -> ChatResponse:
        return await self._next(request)

    async def stream(self, request: Request) -> AsyncIterator[ResponseFragment]:
        response = await self._next(request)
        for fragment in simulate_stream(response):
            yield fragment

    @property
    def call_count(self) -> int:
        return self._call_index


# ---------------------------------------------------------------------------
# Demo mock: context-aware, for running without an API key
# ---------------------------------------------------------------------------

class DemoMockLLMClient(LLMClient):
    """Demonstrates the full tool-calling loop without a real LLM.

    Behaviour:
    1. If the last message is a tool result → return a summary.
    2. If the user asks about dates and ``current_datetime`` is available → call it.
    3. If ``kb_query`` is available → query it with the user text.
    4. Otherwise → return a generic text response.
    """

    _DATE_WORDS = ("day", "date", "time", "today", "tomorrow")

    async def generate(self, request: Request) -> ChatResponse:
        last = request.messages[-1] if request.messages else None
        tool_names = {t.name for t in request.tools}

        if last is not None and last.role is Role.TOOL:
            return ChatResponse(
                content=f"Based on the gathered information: {(last.content or '')[:200]}",
                finish_reason="stop",
            )

        text = request.user_text
        if "current_datetime" in tool_names and any(w in text.lower() for w in self._DATE_WORDS):
            return ChatResponse(
                tool_calls=(ToolCallRequest(id="demo-tc-1", name="current_datetime", arguments={}),),
                finish_reason="tool_calls",
            )
        if "kb_query" in tool_names:
            return ChatResponse(
                tool_calls=(ToolCallRequest(id="demo-tc-1", name="kb_query", arguments={"query": text}),),
                finish_reason="tool_calls",
            )

        return ChatResponse(
            content="This is a demo response. Set OPENAI_API_KEY for real LLM output.",
            finish_reason="stop",
        )

    async def stream(self, request: Request) -> AsyncIterator[ResponseFragment]:
        for fragment in simulate_stream(await self.generate(request)):
            yield fragment
