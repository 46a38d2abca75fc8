"""Engine settings read from the environment, plus logging setup."""

from __future__ import annotations

import logging
import os
from typing import Callable, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_T = TypeVar("_T")


def _read(env: Mapping[str, str], name: str, cast: Callable[[str], _T], default: _T) -> _T:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a {cast.__name__}, got {raw!r}") from None


def _flag(value: str) -> bool:
    return value.lower() in ("1", "true", "yes")


class EngineSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    use_mock_llm: bool = False
    max_tool_rounds: int = 6
    call_timeout: float = 60.0
    trace_dir: str | None = None
    log_level: str = "INFO"
    default_system: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> EngineSettings:
        """Build settings from ``env`` (defaults to ``os.environ``).

        Environment variables (all optional):
          OPENAI_API_KEY          — required for real LLM calls
          OPENAI_MODEL            — default ``gpt-4o-mini``
          USE_MOCK_LLM            — ``1``/``true`` forces the demo mock
          ENGINE_MAX_TOOL_ROUNDS  — default 6
          ENGINE_CALL_TIMEOUT     — seconds, default 60
          ENGINE_TRACE_DIR        — enables JSONL tracing into this directory
          ENGINE_LOG_LEVEL        — default ``INFO``
          ENGINE_DEFAULT_SYSTEM   — system prompt used when a call sets none
          ENGINE_TEMPERATURE / ENGINE_MAX_TOKENS — default chat options
        """
        env = os.environ if env is None else env
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_model=env.get("OPENAI_MODEL") or "gpt-4o-mini",
            use_mock_llm=_flag(env.get("USE_MOCK_LLM", "")),
            max_tool_rounds=_read(env, "ENGINE_MAX_TOOL_ROUNDS", int, 6),
            call_timeout=_read(env, "ENGINE_CALL_TIMEOUT", float, 60.0),
            trace_dir=env.get("ENGINE_TRACE_DIR") or None,
            log_level=(env.get("ENGINE_LOG_LEVEL") or "INFO").upper(),
            default_system=env.get("ENGINE_DEFAULT_SYSTEM") or None,
            temperature=_read(env, "ENGINE_TEMPERATURE", float, None),
            max_tokens=_read(env, "ENGINE_MAX_TOKENS", int, None),
        )

    @property
    def use_demo_backend(self) -> bool:
        return self.use_mock_llm or not self.openai_api_key


def configure_logging(level: str | int = "INFO") -> None:
    """Attach one stream handler to the package logger. Safe to call repeatedly."""
    root = logging.getLogger("advisor_engine")
    root.setLevel(level)
    if any(getattr(h, "_advisor_engine", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._advisor_engine = True  # type: ignore[attr-defined]
    root.addHandler(handler)
