"""InputValidationAdvisor — strips injection phrases, refuses blocked topics."""

from __future__ import annotations

import logging
import re
from typing import AsyncIterator, Iterable

from advisor_engine.advisors.interface import HIGHEST_PRECEDENCE, Advisor, CallNext, StreamNext
from advisor_engine.engine.errors import ChainAborted
from advisor_engine.engine.models import ChatResponse, Request, ResponseFragment

logger = logging.getLogger(__name__)

INJECTION_PATTERNS: tuple[str, ...] = (
    r"ignore previous instructions",
    r"system prompt",
    r"you are now",
)


def sanitize_prompt(text: str, patterns: Iterable[str] = INJECTION_PATTERNS) -> str:
    for pattern in patterns:
        text = re.sub(pattern, "", text, flags=re.IGNORECASE)
    return text.strip()


class InputValidationAdvisor(Advisor):
    """Runs first. Blocked requests never reach the backend.

    With ``failure_response`` set, a blocked request short-circuits into that
    canned answer; otherwise the chain aborts with ``ChainAborted``.
    """

    def __init__(
        self,
        blocked_terms: Iterable[str] = (),
        failure_response: str | None = None,
        patterns: Iterable[str] = INJECTION_PATTERNS,
        order: int = HIGHEST_PRECEDENCE,
    ) -> None:
        self._blocked = tuple(t.lower() for t in blocked_terms)
        self._failure_response = failure_response
        self._patterns = tuple(patterns)
        self.order = order

    def _check(self, request: Request) -> tuple[Request, str | None]:
        cleaned = sanitize_prompt(request.user_text, self._patterns)
        lowered = cleaned.lower()
        hit = next((term for term in self._blocked if term in lowered), None)
        if cleaned != request.user_text:
            request = request.augment_user_text(cleaned)
        return request, hit

    def _refuse(self, term: str) -> ChatResponse:
        logger.warning("blocked request containing %r", term)
        if self._failure_response is None:
            raise ChainAborted(f"Request contains blocked term {term!r}", advisor=self.name)
        return ChatResponse(content=self._failure_response, finish_reason="blocked")

    async def advise_call(self, request: Request, next_call: CallNext) -> ChatResponse:
        request, hit = self._check(request)
        if hit is not None:
            return self._refuse(hit)
        return await next_call(request)

    async def advise_stream(self, request: Request, next_stream: StreamNext) -> AsyncIterator[ResponseFragment]:
        request, hit = self._check(request)
        if hit is not None:
            refusal = self._refuse(hit)
            yield ResponseFragment(content=refusal.text, finish_reason=refusal.finish_reason)
            return
        async for fragment in next_stream(request):
            yield fragment
