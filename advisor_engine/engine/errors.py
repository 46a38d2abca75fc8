"""Error taxonomy for the advisor pipeline.

Each error carries a machine-readable ``code`` and an HTTP ``status_code`` so
the adapters can render failures without knowing the individual classes.
Tool-level failures never surface as exceptions to the caller; the registry
folds them into ``ToolResult(is_error=True)`` for the model to see.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for every failure the engine reports to its caller."""

    code: str = "engine_error"
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ChainAborted(EngineError):
    """An advisor rejected the request or failed while handling it."""

    code = "chain_aborted"
    status_code = 400

    def __init__(self, message: str, advisor: str | None = None) -> None:
        super().__init__(message, details={"advisor": advisor} if advisor else None)
        self.advisor = advisor


class BackendError(EngineError):
    """The model backend failed (network, auth, quota, malformed reply)."""

    code = "backend_error"
    status_code = 502


class ToolDispatchError(EngineError):
    """A single tool call could not be executed."""

    code = "tool_dispatch_error"
    status_code = 500

    def __init__(self, message: str, tool: str) -> None:
        super().__init__(message, details={"tool": tool})
        self.tool = tool


class ToolRoundLimitExceeded(EngineError):
    code = "tool_round_limit_exceeded"
    status_code = 508

    def __init__(self, max_rounds: int) -> None:
        super().__init__(
            f"Max tool rounds ({max_rounds}) reached without final answer",
            details={"max_rounds": max_rounds},
        )
        self.max_rounds = max_rounds


class StructuredOutputParseError(EngineError):
    """Model output did not match the requested target shape."""

    code = "structured_output_parse_error"
    status_code = 422

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message, details={"raw_text": raw_text[:500]})
        self.raw_text = raw_text


class CallTimeoutError(EngineError):
    code = "call_timeout"
    status_code = 504

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Call timed out after {timeout} seconds", details={"timeout": timeout})
        self.timeout = timeout


class PromptTemplateError(EngineError):
    """User text placeholders could not be rendered from the given params."""

    code = "invalid_prompt"
    status_code = 400


class UnsupportedOutputTypeError(EngineError):
    """The requested entity type cannot be described as a JSON schema."""

    code = "unsupported_output_type"
    status_code = 400
