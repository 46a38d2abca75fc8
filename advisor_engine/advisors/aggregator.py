"""Stream aggregation for advisors that need the complete response."""

from __future__ import annotations

import inspect
from typing import AsyncIterator, Awaitable, Callable, Union

from advisor_engine.engine.models import ChatResponse, ResponseFragment

OnComplete = Callable[[ChatResponse], Union[None, Awaitable[None]]]


async def aggregate_stream(
    fragments: AsyncIterator[ResponseFragment],
    on_complete: OnComplete,
) -> AsyncIterator[ResponseFragment]:
    """Re-yield *fragments* unchanged; call *on_complete* once after the last one.

    Fragments are buffered in order. If the consumer stops early or the
    upstream raises, ``on_complete`` never fires.
    """
    buffered: list[ResponseFragment] = []
    async for fragment in fragments:
        buffered.append(fragment)
        yield fragment

    outcome = on_complete(ChatResponse.from_fragments(buffered))
    if inspect.isawaitable(outcome):
        await outcome
