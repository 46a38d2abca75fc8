"""Structured-output projection: schema injection + strict parsing."""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import PydanticUserError, TypeAdapter, ValidationError

from advisor_engine.engine.errors import StructuredOutputParseError, UnsupportedOutputTypeError

T = TypeVar("T")

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class StructuredOutputConverter(Generic[T]):
    """Turns a target type into format instructions and parses model text into it.

    Works for anything pydantic can validate: models, dataclasses, typed
    containers. ``Enum`` targets also accept a bare word (``POSITIVE``)
    since models rarely quote a single-token answer.
    """

    def __init__(self, target: type[T]) -> None:
        self.target = target
        try:
            self._adapter: TypeAdapter[T] = TypeAdapter(target)
            self._schema = self._adapter.json_schema()
        except PydanticUserError as exc:
            raise UnsupportedOutputTypeError(f"Cannot produce structured output for {target!r}: {exc}") from exc

    @property
    def is_enum(self) -> bool:
        return isinstance(self.target, type) and issubclass(self.target, Enum)

    def json_schema(self) -> dict[str, Any]:
        return self._schema

    def format_instructions(self) -> str:
        if self.is_enum:
            choices = ", ".join(str(member.value) for member in self.target)  # type: ignore[attr-defined]
            return f"Your response must be only one of these values: {choices}."
        schema = json.dumps(self.json_schema(), indent=2)
        return (
            "Your response should be in JSON format.\n"
            "Do not include any explanations, only provide a RFC8259 compliant JSON response "
            "following this format without deviation.\n"
            "Do not include markdown code blocks in your response.\n"
            f"Here is the JSON Schema instance your output must adhere to:\n```{schema}```"
        )

    def parse(self, text: str | None) -> T:
        raw = text or ""
        cleaned = raw.strip()
        match = _FENCE_RE.match(cleaned)
        if match:
            cleaned = match.group(1)
        try:
            if self.is_enum and not cleaned.startswith('"'):
                return self._adapter.validate_python(cleaned.strip().rstrip("."))
            return self._adapter.validate_json(cleaned)
        except ValidationError as exc:
            raise StructuredOutputParseError(
                f"Could not parse model output as {getattr(self.target, '__name__', self.target)}: "
                f"{exc.error_count()} validation error(s)",
                raw_text=raw,
            ) from exc
