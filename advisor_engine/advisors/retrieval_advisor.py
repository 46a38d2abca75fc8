"""QuestionAnswerAdvisor — retrieval augmentation of the user message."""

from __future__ import annotations

from typing import AsyncIterator

from advisor_engine.advisors.interface import DEFAULT_ORDER, Advisor, CallNext, StreamNext
from advisor_engine.engine.models import ChatResponse, Request, ResponseFragment
from advisor_engine.memory.interface import DocChunk, Retriever

RETRIEVED_DOCUMENTS = "retrieved_documents"

DEFAULT_USER_TEXT_ADVISE = """
Context information is below, surrounded by ---------------------

---------------------
{context}
---------------------

Given the context and provided history information and not prior knowledge,
reply to the user comment. If the answer is not in the context, inform
the user that you can't answer the question.
"""


class QuestionAnswerAdvisor(Advisor):
    def __init__(
        self,
        retriever: Retriever,
        top_k: int = 4,
        user_text_advise: str = DEFAULT_USER_TEXT_ADVISE,
        order: int = DEFAULT_ORDER,
    ) -> None:
        self._retriever = retriever
        self._top_k = top_k
        self._advise = user_text_advise
        self.order = order

    async def _before(self, request: Request) -> tuple[Request, list[dict]]:
        chunks: list[DocChunk] = await self._retriever.retrieve(request.user_text, k=self._top_k)
        context = "\n".join(f"[{c.source}] {c.text}" for c in chunks)
        advised = request.augment_user_text(request.user_text + "\n" + self._advise.format(context=context))
        documents = [c.model_dump() for c in chunks]
        return advised.with_context(**{RETRIEVED_DOCUMENTS: documents}), documents

    async def advise_call(self, request: Request, next_call: CallNext) -> ChatResponse:
        advised, documents = await self._before(request)
        response = await next_call(advised)
        metadata = {**response.metadata, RETRIEVED_DOCUMENTS: documents}
        return response.model_copy(update={"metadata": metadata})

    async def advise_stream(self, request: Request, next_stream: StreamNext) -> AsyncIterator[ResponseFragment]:
        advised, _ = await self._before(request)
        async for fragment in next_stream(advised):
            yield fragment
