"""SimpleLoggingAdvisor — debug-logs every request and aggregated response."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Callable

from advisor_engine.advisors.aggregator import aggregate_stream
from advisor_engine.advisors.interface import DEFAULT_ORDER, Advisor, CallNext, StreamNext
from advisor_engine.engine.models import ChatResponse, Request, ResponseFragment

logger = logging.getLogger(__name__)


def _default_request_to_str(request: Request) -> str:
    return request.model_dump_json(exclude={"tools"})


def _default_response_to_str(response: ChatResponse) -> str:
    return response.model_dump_json(indent=2, exclude={"entity"})


class SimpleLoggingAdvisor(Advisor):
    def __init__(
        self,
        request_to_str: Callable[[Request], str] | None = None,
        response_to_str: Callable[[ChatResponse], str] | None = None,
        order: int = DEFAULT_ORDER,
    ) -> None:
        self._request_to_str = request_to_str or _default_request_to_str
        self._response_to_str = response_to_str or _default_response_to_str
        self.order = order

    async def advise_call(self, request: Request, next_call: CallNext) -> ChatResponse:
        self._log_request(request)
        response = await next_call(request)
        self._log_response(response)
        return response

    def advise_stream(self, request: Request, next_stream: StreamNext) -> AsyncIterator[ResponseFragment]:
        self._log_request(request)
        return aggregate_stream(next_stream(request), self._log_response)

    def _log_request(self, request: Request) -> None:
        logger.debug("request: %s", self._request_to_str(request))

    def _log_response(self, response: ChatResponse) -> None:
        logger.debug("response: %s", self._response_to_str(response))
