"""Advisor ABC — an ordered interceptor around every model round trip."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Awaitable, Callable

from advisor_engine.engine.models import ChatResponse, Request, ResponseFragment

# Continuations: "the rest of the chain", ending in the model backend.
CallNext = Callable[[Request], Awaitable[ChatResponse]]
StreamNext = Callable[[Request], AsyncIterator[ResponseFragment]]

HIGHEST_PRECEDENCE = -(2**31)
LOWEST_PRECEDENCE = 2**31 - 1
DEFAULT_ORDER = 0
MEMORY_ORDER = HIGHEST_PRECEDENCE + 1000


class Advisor(ABC):
    """Lower ``order`` runs first on the way in and last on the way out.

    ``advise_call`` is mandatory. ``advise_stream`` defaults to a pass-through,
    so a call-only advisor does not see streaming traffic at all.
    """

    order: int = DEFAULT_ORDER

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def advise_call(self, request: Request, next_call: CallNext) -> ChatResponse: ...

    def advise_stream(self, request: Request, next_stream: StreamNext) -> AsyncIterator[ResponseFragment]:
        return next_stream(request)

    def __repr__(self) -> str:
        return f"{self.name}(order={self.order})"
