"""MessageMemoryAdvisor — injects conversation history, commits finished turns."""

from __future__ import annotations

import logging
from typing import AsyncIterator

from advisor_engine.advisors.aggregator import aggregate_stream
from advisor_engine.advisors.interface import MEMORY_ORDER, Advisor, CallNext, StreamNext
from advisor_engine.engine.models import ChatResponse, Message, Request, ResponseFragment
from advisor_engine.engine.structured import StructuredOutputConverter
from advisor_engine.memory.interface import ConversationMemory

logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION_ID = "default"


class MessageMemoryAdvisor(Advisor):
    """Wraps every round trip with the stored history of its conversation.

    Only terminal responses are committed (user text + assistant text).
    Tool-call rounds, failures and abandoned streams leave history untouched.
    """

    def __init__(
        self,
        memory: ConversationMemory,
        *,
        default_conversation_id: str = DEFAULT_CONVERSATION_ID,
        history_limit: int | None = None,
        order: int = MEMORY_ORDER,
    ) -> None:
        self._memory = memory
        self._default_id = default_conversation_id
        self._history_limit = history_limit
        self.order = order

    def _conversation_id(self, request: Request) -> str:
        return request.conversation_id or self._default_id

    async def _before(self, request: Request) -> Request:
        history = await self._memory.load(self._conversation_id(request))
        if self._history_limit is not None:
            history = history[-self._history_limit:] if self._history_limit > 0 else []
        return request.insert_history(history)

    async def _commit(self, request: Request, response: ChatResponse) -> None:
        if response.is_tool_call:
            return
        if request.output_type is not None and response.entity is None:
            # Answered by an inner advisor: parse before storing.
            StructuredOutputConverter(request.output_type).parse(response.content)
        turn = []
        if request.user_message is not None:
            turn.append(request.user_message)
        turn.append(Message.assistant(response.text))
        conversation_id = self._conversation_id(request)
        await self._memory.append(conversation_id, turn)
        logger.debug("conversation=%s committed %d message(s)", conversation_id, len(turn))

    async def advise_call(self, request: Request, next_call: CallNext) -> ChatResponse:
        response = await next_call(await self._before(request))
        await self._commit(request, response)
        return response

    async def advise_stream(self, request: Request, next_stream: StreamNext) -> AsyncIterator[ResponseFragment]:
        advised = await self._before(request)

        async def commit(response: ChatResponse) -> None:
            await self._commit(request, response)

        async for fragment in aggregate_stream(next_stream(advised), commit):
            yield fragment
