"""Tool registry with Pydantic v2 schemas, timeout, retry, and tracing."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from pydantic import BaseModel, ValidationError

from advisor_engine.engine.errors import ToolDispatchError
from advisor_engine.engine.models import ToolCallRequest, ToolDescriptor, ToolResult
from advisor_engine.tracing.interface import NullTraceCollector, TraceCollector

logger = logging.getLogger(__name__)


@dataclass
class ToolDef:
    """Registration record for a single tool.

    ``handler`` receives the validated ``input_model`` instance and may be
    sync or async. Sync handlers run in a worker thread.
    """

    name: str
    description: str
    input_model: type[BaseModel]
    handler: Callable[..., Any]
    output_model: type[BaseModel] | None = None
    timeout: float = 30.0
    max_retries: int = 0

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            parameters=self.input_model.model_json_schema(),
        )


class ToolRegistry:
    """Name -> tool map. ``dispatch`` never raises; failures become error results."""

    def __init__(self, trace_collector: TraceCollector | None = None) -> None:
        self._tools: dict[str, ToolDef] = {}
        self._trace = trace_collector or NullTraceCollector()

    # -- registration -------------------------------------------------------

    def register(self, tool_def: ToolDef) -> None:
        if tool_def.name in self._tools:
            logger.debug("Replacing tool %s", tool_def.name)
        self._tools[tool_def.name] = tool_def
        logger.info("Registered tool %s", tool_def.name)

    def register_handler(
        self,
        name: str,
        input_model: type[BaseModel],
        handler: Callable[..., Any],
        *,
        description: str = "",
        **options: Any,
    ) -> ToolDef:
        tool_def = ToolDef(
            name=name,
            description=description or (inspect.getdoc(handler) or ""),
            input_model=input_model,
            handler=handler,
            **options,
        )
        self.register(tool_def)
        return tool_def

    def get(self, name: str) -> ToolDef | None:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def descriptors(self, names: Iterable[str] | None = None) -> list[ToolDescriptor]:
        """Descriptors for *names* (all tools when ``None``); unknown names are skipped."""
        if names is None:
            return [t.descriptor() for t in self._tools.values()]
        selected = []
        for name in names:
            tool = self._tools.get(name)
            if tool is None:
                logger.warning("Requested tool %s is not registered", name)
                continue
            selected.append(tool.descriptor())
        return selected

    # -- execution ----------------------------------------------------------

    async def dispatch(self, call: ToolCallRequest, trace_id: str | None = None) -> ToolResult:
        try:
            value = await self._execute(call, trace_id)
        except ToolDispatchError as exc:
            return ToolResult(id=call.id, name=call.name, value={"error": exc.message}, is_error=True)
        return ToolResult(id=call.id, name=call.name, value=value)

    async def dispatch_all(self, calls: Iterable[ToolCallRequest], trace_id: str | None = None) -> list[ToolResult]:
        """Run one round concurrently; results come back in call order."""
        return list(await asyncio.gather(*(self.dispatch(call, trace_id) for call in calls)))

    async def _execute(self, call: ToolCallRequest, trace_id: str | None) -> Any:
        tool = self._tools.get(call.name)
        if tool is None:
            raise ToolDispatchError(f"Tool '{call.name}' not found", tool=call.name)

        try:
            validated_input = tool.input_model.model_validate(call.arguments)
        except ValidationError as exc:
            raise ToolDispatchError(f"Invalid arguments for tool '{call.name}': {exc}", tool=call.name) from exc

        last_exc: Exception | None = None
        for attempt in range(1, tool.max_retries + 2):  # +2 because range is exclusive
            try:
                t0 = time.time()
                raw = await asyncio.wait_for(self._invoke(tool, validated_input), timeout=tool.timeout)
                latency = time.time() - t0
                value = self._dump(tool, raw)

                logger.info("tool=%s call=%s attempt=%d latency=%.3fs OK", call.name, call.id, attempt, latency)
                if trace_id:
                    await self._trace.emit(trace_id, "tool_exec", {
                        "tool": call.name,
                        "call_id": call.id,
                        "attempt": attempt,
                        "latency_ms": round(latency * 1000, 2),
                        "status": "ok",
                    })
                return value

            except asyncio.TimeoutError:
                last_exc = ToolDispatchError(f"Tool '{call.name}' timed out after {tool.timeout}s", tool=call.name)
            except Exception as exc:
                last_exc = exc
            logger.warning("tool=%s call=%s attempt=%d error=%s", call.name, call.id, attempt, last_exc)
            if trace_id:
                await self._trace.emit(trace_id, "tool_exec", {
                    "tool": call.name,
                    "call_id": call.id,
                    "attempt": attempt,
                    "status": "error",
                    "error": str(last_exc),
                })

        if isinstance(last_exc, ToolDispatchError):
            raise last_exc
        raise ToolDispatchError(f"Tool '{call.name}' failed: {last_exc}", tool=call.name) from last_exc

    @staticmethod
    async def _invoke(tool: ToolDef, validated_input: BaseModel) -> Any:
        if inspect.iscoroutinefunction(tool.handler):
            return await tool.handler(validated_input)
        return await asyncio.to_thread(tool.handler, validated_input)

    @staticmethod
    def _dump(tool: ToolDef, raw: Any) -> Any:
        if tool.output_model is not None and not isinstance(raw, BaseModel):
            raw = tool.output_model.model_validate(raw)
        if isinstance(raw, BaseModel):
            return raw.model_dump(mode="json")
        return raw
