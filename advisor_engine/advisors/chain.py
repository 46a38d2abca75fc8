"""AdvisorChain — onion composition of advisors around a terminal handler."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Iterable

from advisor_engine.advisors.interface import Advisor, CallNext, StreamNext
from advisor_engine.engine.errors import ChainAborted, EngineError
from advisor_engine.engine.models import ChatResponse, Request, ResponseFragment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    order: int
    seq: int
    advisor: Advisor


class AdvisorChain:
    """Ordered advisors composed as nested continuations.

    The composed handler is rebuilt per run from an explicit ordered list:
    the terminal handler is wrapped by the last advisor, that by the one
    before it, and so on. Registration order breaks ties in ``order``.
    """

    def __init__(self, advisors: Iterable[Advisor] = ()) -> None:
        self._entries: list[_Entry] = []
        self._seq = itertools.count()
        for advisor in advisors:
            self.register(advisor)

    # -- registration -------------------------------------------------------

    def register(self, advisor: Advisor, order: int | None = None) -> None:
        effective = advisor.order if order is None else order
        if any(e.advisor.name == advisor.name for e in self._entries):
            logger.warning("Advisor %s registered more than once", advisor.name)
        self._entries.append(_Entry(effective, next(self._seq), advisor))
        self._entries.sort(key=lambda e: (e.order, e.seq))
        logger.info("Registered advisor %s (order=%d)", advisor.name, effective)

    @property
    def advisors(self) -> list[Advisor]:
        return [e.advisor for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    # -- execution ----------------------------------------------------------

    async def run_call(self, request: Request, terminal: CallNext) -> ChatResponse:
        handler = self._guard_call(request.conversation_id, terminal)
        for entry in reversed(self._entries):
            handler = _bind_call(entry.advisor, handler)
        return await handler(request)

    def run_stream(self, request: Request, terminal: StreamNext) -> AsyncIterator[ResponseFragment]:
        handler = self._guard_stream(request.conversation_id, terminal)
        for entry in reversed(self._entries):
            handler = _bind_stream(entry.advisor, handler)
        return handler(request)

    # -- conversation id must survive the chain ------------------------------

    @staticmethod
    def _guard_call(conversation_id: str | None, terminal: CallNext) -> CallNext:
        async def guarded(request: Request) -> ChatResponse:
            _check_conversation(conversation_id, request)
            return await terminal(request)

        return guarded

    @staticmethod
    def _guard_stream(conversation_id: str | None, terminal: StreamNext) -> StreamNext:
        def guarded(request: Request) -> AsyncIterator[ResponseFragment]:
            _check_conversation(conversation_id, request)
            return terminal(request)

        return guarded


def _check_conversation(expected: str | None, request: Request) -> None:
    if request.conversation_id != expected:
        raise ChainAborted(
            f"Conversation id changed inside the chain ({expected!r} -> {request.conversation_id!r})"
        )


def _bind_call(advisor: Advisor, next_call: CallNext) -> CallNext:
    async def step(request: Request) -> ChatResponse:
        try:
            return await advisor.advise_call(request, next_call)
        except EngineError:
            raise
        except Exception as exc:
            logger.warning("advisor=%s failed: %s", advisor.name, exc)
            raise ChainAborted(f"Advisor {advisor.name} failed: {exc}", advisor=advisor.name) from exc

    return step


def _bind_stream(advisor: Advisor, next_stream: StreamNext) -> StreamNext:
    async def step(request: Request) -> AsyncIterator[ResponseFragment]:
        try:
            async for fragment in advisor.advise_stream(request, next_stream):
                yield fragment
        except EngineError:
            raise
        except Exception as exc:
            logger.warning("advisor=%s failed while streaming: %s", advisor.name, exc)
            raise ChainAborted(f"Advisor {advisor.name} failed: {exc}", advisor=advisor.name) from exc

    return step
