"""Built-in example tools: current_datetime and kb_query."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel

from advisor_engine.memory.interface import Retriever
from advisor_engine.tools.registry import ToolDef


# ---------------------------------------------------------------------------
# current_datetime: lets the model answer "what day is tomorrow?"
# ---------------------------------------------------------------------------

class DateTimeInput(BaseModel):
    timezone: str | None = None


class DateTimeOutput(BaseModel):
    now: str
    timezone: str
    weekday: str


async def _current_datetime_handler(inp: DateTimeInput) -> dict:
    if inp.timezone:
        try:
            tz = ZoneInfo(inp.timezone)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone '{inp.timezone}'") from exc
        now = datetime.now(tz)
    else:
        now = datetime.now().astimezone()
    return {
        "now": now.isoformat(timespec="seconds"),
        "timezone": str(now.tzinfo),
        "weekday": now.strftime("%A"),
    }


CURRENT_DATETIME_TOOL = ToolDef(
    name="current_datetime",
    description="Get the current date and time, optionally in a given IANA timezone.",
    input_model=DateTimeInput,
    output_model=DateTimeOutput,
    handler=_current_datetime_handler,
)


# ---------------------------------------------------------------------------
# kb_query: calls Retriever.retrieve and returns snippets
# ---------------------------------------------------------------------------

class KBQueryInput(BaseModel):
    query: str


class KBQueryOutput(BaseModel):
    snippets: list[str]


def make_kb_query_tool(retriever: Retriever) -> ToolDef:
    """Factory — binds a *Retriever* instance into the tool handler."""

    async def _kb_query_handler(inp: KBQueryInput) -> dict:
        chunks = await retriever.retrieve(inp.query, k=3)
        return {"snippets": [c.text for c in chunks]}

    return ToolDef(
        name="kb_query",
        description="Query the knowledge base for relevant documentation snippets.",
        input_model=KBQueryInput,
        output_model=KBQueryOutput,
        handler=_kb_query_handler,
    )
