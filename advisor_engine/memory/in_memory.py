"""In-memory conversation store and keyword-overlap retriever."""

from __future__ import annotations

import threading
from typing import Sequence

from advisor_engine.engine.models import Message
from advisor_engine.memory.interface import ConversationMemory, DocChunk, Retriever


class InMemoryConversationMemory(ConversationMemory):
    """Dict-backed store — suitable for single-process dev/test.

    Guarded by a threading lock so writers from worker threads and from the
    event loop see the same history. No eviction: growth is unbounded.
    """

    def __init__(self) -> None:
        self._store: dict[str, list[Message]] = {}
        self._lock = threading.Lock()

    async def append(self, conversation_id: str, messages: Sequence[Message]) -> None:
        with self._lock:
            self._store.setdefault(conversation_id, []).extend(messages)

    async def load(self, conversation_id: str) -> list[Message]:
        with self._lock:
            return list(self._store.get(conversation_id, ()))

    async def clear(self, conversation_id: str) -> None:
        with self._lock:
            self._store.pop(conversation_id, None)

    def conversation_ids(self) -> list[str]:
        with self._lock:
            return list(self._store)


SAMPLE_CORPUS: list[DocChunk] = [
    DocChunk(
        id="1",
        text="OpenAI GPT-4o has a context window size of 128000 tokens.",
        source="models.json",
    ),
    DocChunk(
        id="2",
        text="Anthropic Claude Sonnet 4 has a context window size of 200000 tokens.",
        source="models.json",
    ),
    DocChunk(
        id="3",
        text="Google Gemini 2.5 Pro has a context window size of 1000000 tokens; "
             "Gemini 2.0 Pro (Exp.) reaches 2000000 tokens.",
        source="models.json",
    ),
    DocChunk(
        id="4",
        text="Meta AI Llama 3.1 405B has a context window size of 128000 tokens.",
        source="models.json",
    ),
    DocChunk(
        id="5",
        text="xAI Grok 3 has a context window size of 1000000 tokens.",
        source="models.json",
    ),
    DocChunk(
        id="6",
        text="Mistral Large 2, Qwen 2.5 72B and DeepSeek R1 each have a context "
             "window size of 128000 tokens.",
        source="models.json",
    ),
]


class InMemoryRetriever(Retriever):
    """Keyword-overlap scorer over a static corpus."""

    def __init__(self, corpus: list[DocChunk] | None = None) -> None:
        self._corpus = corpus if corpus is not None else list(SAMPLE_CORPUS)

    async def retrieve(self, query: str, k: int = 4) -> list[DocChunk]:
        query_words = set(query.lower().split())
        scored: list[DocChunk] = []
        for chunk in self._corpus:
            overlap = len(query_words & set(chunk.text.lower().split()))
            if overlap > 0:
                score = round(overlap / max(len(query_words), 1), 4)
                scored.append(chunk.model_copy(update={"score": score}))
        scored.sort(key=lambda c: c.score, reverse=True)
        return scored[:k]
