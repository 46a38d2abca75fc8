"""Core data models — no internal dependencies, only Pydantic + stdlib."""

from __future__ import annotations

import json
import uuid
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCallRequest(BaseModel):
    """A single tool/function call requested by the LLM."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | None = None
    tool_calls: tuple[ToolCallRequest, ...] = ()  # assistant messages requesting tools
    tool_call_id: str | None = None  # tool result messages

    @classmethod
    def system(cls, text: str) -> Message:
        return cls(role=Role.SYSTEM, content=text)

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role=Role.USER, content=text)

    @classmethod
    def assistant(cls, text: str | None, tool_calls: Iterable[ToolCallRequest] = ()) -> Message:
        return cls(role=Role.ASSISTANT, content=text, tool_calls=tuple(tool_calls))


# ---------------------------------------------------------------------------
# Options + tools
# ---------------------------------------------------------------------------

class ChatOptions(BaseModel):
    """Model options. ``None`` means "let the backend decide"."""
    model_config = ConfigDict(frozen=True)

    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    stop: tuple[str, ...] | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    def merge(self, override: ChatOptions | None) -> ChatOptions:
        """Return a copy where every field set on *override* wins."""
        if override is None:
            return self
        update = override.model_dump(exclude_none=True, exclude={"extra"})
        update["extra"] = {**self.extra, **override.extra}
        return self.model_copy(update=update)


class ToolDescriptor(BaseModel):
    """What the model sees of a tool: name, description, JSON schema."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    id: str
    name: str
    value: Any = None
    is_error: bool = False


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class Request(BaseModel):
    """Immutable request value. Advisors derive new requests, never mutate."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    messages: tuple[Message, ...] = ()
    conversation_id: str | None = None
    options: ChatOptions = Field(default_factory=ChatOptions)
    tools: tuple[ToolDescriptor, ...] = ()
    output_schema: dict[str, Any] | None = None
    output_type: Any = Field(default=None, exclude=True)
    context: dict[str, Any] = Field(default_factory=dict)
    trace_id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def user_message(self) -> Message | None:
        """The current turn's user message (the last one)."""
        for message in reversed(self.messages):
            if message.role is Role.USER:
                return message
        return None

    @property
    def user_text(self) -> str:
        message = self.user_message
        return (message.content or "") if message else ""

    def with_messages(self, messages: Iterable[Message]) -> Request:
        return self.model_copy(update={"messages": tuple(messages)})

    def with_context(self, **values: Any) -> Request:
        return self.model_copy(update={"context": {**self.context, **values}})

    def insert_history(self, history: Iterable[Message]) -> Request:
        """Place *history* after the leading system messages, before the current turn."""
        history = tuple(history)
        if not history:
            return self
        split = 0
        while split < len(self.messages) and self.messages[split].role is Role.SYSTEM:
            split += 1
        return self.with_messages(self.messages[:split] + history + self.messages[split:])

    def augment_user_text(self, text: str) -> Request:
        """Replace the content of the current user message."""
        messages = list(self.messages)
        for index in range(len(messages) - 1, -1, -1):
            if messages[index].role is Role.USER:
                messages[index] = messages[index].model_copy(update={"content": text})
                return self.with_messages(messages)
        return self.with_messages([*messages, Message.user(text)])

    def with_tool_round(self, response: ChatResponse, results: Iterable[ToolResult]) -> Request:
        """Append the assistant tool-call message (text included) and one tool message per result."""
        appended = [Message.assistant(response.content, response.tool_calls)]
        appended.extend(
            Message(role=Role.TOOL, content=json.dumps(result.value, default=str), tool_call_id=result.id)
            for result in results
        )
        return self.with_messages([*self.messages, *appended])


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ResponseFragment(BaseModel):
    """One incremental piece of a streaming response."""
    content: str = ""
    tool_calls: tuple[ToolCallRequest, ...] = ()
    finish_reason: str | None = None
    usage: Usage | None = None


class ChatResponse(BaseModel):
    """Either terminal content or a tool-call request (``is_tool_call``)."""
    content: str | None = None
    tool_calls: tuple[ToolCallRequest, ...] = ()
    finish_reason: str | None = None
    usage: Usage | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    entity: Any = None

    @property
    def is_tool_call(self) -> bool:
        return bool(self.tool_calls)

    @property
    def text(self) -> str:
        return self.content or ""

    @classmethod
    def from_fragments(cls, fragments: Iterable[ResponseFragment]) -> ChatResponse:
        parts: list[str] = []
        tool_calls: list[ToolCallRequest] = []
        finish_reason: str | None = None
        usage: Usage | None = None
        for fragment in fragments:
            parts.append(fragment.content)
            tool_calls.extend(fragment.tool_calls)
            finish_reason = fragment.finish_reason or finish_reason
            usage = fragment.usage or usage
        return cls(
            content="".join(parts) if parts else None,
            tool_calls=tuple(tool_calls),
            finish_reason=finish_reason,
            usage=usage,
        )


# ---------------------------------------------------------------------------
# Caller-facing result
# ---------------------------------------------------------------------------

class ResultKind(str, Enum):
    TEXT = "text"
    ENTITY = "entity"
    MEDIA = "media"
    ERROR = "error"


class ErrorInfo(BaseModel):
    code: str
    message: str


class CallResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: ResultKind
    text: str | None = None
    entity: Any = None
    media: bytes | None = None
    media_type: str | None = None
    response: ChatResponse | None = None
    error: ErrorInfo | None = None
    exception: Exception | None = Field(default=None, exclude=True)

    @property
    def ok(self) -> bool:
        return self.kind is not ResultKind.ERROR

    def raise_for_error(self) -> CallResult:
        if self.exception is not None:
            raise self.exception
        return self

    @classmethod
    def failed(cls, exc: Exception) -> CallResult:
        code = getattr(exc, "code", "internal_error")
        return cls(
            kind=ResultKind.ERROR,
            error=ErrorInfo(code=code, message=str(exc)),
            exception=exc,
        )
