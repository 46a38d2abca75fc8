"""FastAPI adapter — thin translation layer, no business logic."""

from __future__ import annotations

import json
import logging

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel

from advisor_engine import create_engine
from advisor_engine.engine.errors import EngineError
from advisor_engine.engine.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


class ChatBody(BaseModel):
    message: str
    conversation_id: str | None = None
    system: str | None = None
    tools: list[str] | None = None
    params: dict[str, str] | None = None


def _sse(event: str, payload: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(payload, default=str)}\n\n"


def create_app(engine: Orchestrator | None = None) -> FastAPI:
    engine = engine or create_engine()
    app = FastAPI(title="AdvisorEngine API", version="0.1.0")

    @app.post("/chat")
    async def chat(body: ChatBody) -> JSONResponse:
        result = await engine.call(
            body.message,
            system=body.system,
            conversation_id=body.conversation_id,
            tools=body.tools,
            params=body.params,
        )
        if not result.ok:
            status = getattr(result.exception, "status_code", 500)
            return JSONResponse({"error": result.error.model_dump()}, status_code=status)
        return JSONResponse({"kind": result.kind.value, "text": result.text})

    @app.post("/chat/stream")
    async def chat_stream(body: ChatBody) -> StreamingResponse:
        async def sse_stream():
            try:
                async for text in engine.stream(
                    body.message,
                    system=body.system,
                    conversation_id=body.conversation_id,
                    tools=body.tools,
                    params=body.params,
                ):
                    yield _sse("token", {"text": text})
            except EngineError as exc:
                logger.warning("stream failed: %s", exc)
                yield _sse("error", exc.to_dict())
                return
            yield _sse("done", {})

        return StreamingResponse(
            sse_stream(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )

    @app.get("/speak")
    async def speak(text: str = Query(..., min_length=1)) -> Response:
        result = await engine.speak(text)
        if not result.ok:
            status = getattr(result.exception, "status_code", 500)
            return JSONResponse({"error": result.error.model_dump()}, status_code=status)
        return Response(content=result.media, media_type=result.media_type)

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    return app


# Module-level instance for ``uvicorn advisor_engine.adapters.web_fastapi.app:app``
app = create_app()


def serve() -> None:
    """Entry-point for ``advisor-web`` console script."""
    import uvicorn

    uvicorn.run(
        "advisor_engine.adapters.web_fastapi.app:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
    )
