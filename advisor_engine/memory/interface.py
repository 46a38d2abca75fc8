"""Memory interfaces — conversation history store and document retrieval."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from pydantic import BaseModel

from advisor_engine.engine.models import Message


class DocChunk(BaseModel):
    id: str
    text: str
    source: str
    score: float = 0.0


class ConversationMemory(ABC):
    """Ordered message history per conversation id.

    Swap to Redis/Postgres by implementing this ABC. ``append`` must be safe
    under concurrent writers; interleaving of concurrent turns is undefined.
    """

    @abstractmethod
    async def append(self, conversation_id: str, messages: Sequence[Message]) -> None: ...

    @abstractmethod
    async def load(self, conversation_id: str) -> list[Message]:
        """Oldest first; empty list for an unknown id."""

    @abstractmethod
    async def clear(self, conversation_id: str) -> None: ...


class Retriever(ABC):
    """Async retrieval interface.

    Swap to a real vector store by implementing this ABC.
    """

    @abstractmethod
    async def retrieve(self, query: str, k: int = 4) -> list[DocChunk]: ...
