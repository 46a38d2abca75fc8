"""Orchestrator — request assembly, advisor chain, tool-calling loop."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Iterable, Mapping

from advisor_engine.advisors.chain import AdvisorChain
from advisor_engine.engine.errors import (
    BackendError,
    CallTimeoutError,
    EngineError,
    PromptTemplateError,
    ToolRoundLimitExceeded,
)
from advisor_engine.engine.llm import LLMClient
from advisor_engine.engine.media import ImageOptions, MediaClient, SpeechOptions
from advisor_engine.engine.models import (
    CallResult,
    ChatOptions,
    ChatResponse,
    Message,
    Request,
    ResponseFragment,
    ResultKind,
)
from advisor_engine.engine.structured import StructuredOutputConverter
from advisor_engine.tools.registry import ToolRegistry
from advisor_engine.tracing.interface import NullTraceCollector, TraceCollector

logger = logging.getLogger(__name__)


class CallState(str, Enum):
    BUILDING = "building"
    CALLING = "calling"
    TOOL_ROUND = "tool_round"
    TERMINAL = "terminal"
    FAILED = "failed"


def render_user_text(text: str, params: Mapping[str, Any] | None) -> str:
    """Fill ``{name}`` placeholders. Text without params is left untouched."""
    if not params:
        return text
    try:
        return text.format_map(dict(params))
    except (KeyError, IndexError, ValueError) as exc:
        raise PromptTemplateError(f"Cannot render user text: {exc!r}") from exc


class Orchestrator:
    """Public API: ``await engine.call(...)`` and ``async for t in engine.stream(...)``.

    Every round trip to the model runs through the full advisor chain; tool
    rounds are driven iteratively here, bounded by ``max_tool_rounds``.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        chain: AdvisorChain | None = None,
        tool_registry: ToolRegistry | None = None,
        media_client: MediaClient | None = None,
        trace_collector: TraceCollector | None = None,
        default_system: str | None = None,
        default_options: ChatOptions | None = None,
        max_tool_rounds: int = 6,
        call_timeout: float = 60.0,
    ) -> None:
        self._llm = llm_client
        self._chain = chain or AdvisorChain()
        self._tools = tool_registry or ToolRegistry()
        self._media = media_client
        self._trace = trace_collector or NullTraceCollector()
        self._default_system = default_system
        self._default_options = default_options or ChatOptions()
        self.max_tool_rounds = max_tool_rounds
        self.call_timeout = call_timeout

    @property
    def chain(self) -> AdvisorChain:
        return self._chain

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def build_request(
        self,
        user: str,
        *,
        system: str | None = None,
        conversation_id: str | None = None,
        options: ChatOptions | None = None,
        tools: Iterable[str] | None = None,
        params: Mapping[str, Any] | None = None,
        output_type: Any = None,
        trace_id: str | None = None,
    ) -> Request:
        messages: list[Message] = []
        system_text = system if system is not None else self._default_system
        if system_text:
            messages.append(Message.system(system_text))

        output_schema = None
        if output_type is not None:
            converter = StructuredOutputConverter(output_type)
            output_schema = converter.json_schema()
            messages.append(Message.system(converter.format_instructions()))

        messages.append(Message.user(render_user_text(user, params)))

        return Request(
            messages=tuple(messages),
            conversation_id=conversation_id,
            options=self._default_options.merge(options),
            tools=tuple(self._tools.descriptors(tools)),
            output_schema=output_schema,
            output_type=output_type,
            trace_id=trace_id or str(uuid.uuid4()),
        )

    # ------------------------------------------------------------------
    # Blocking call
    # ------------------------------------------------------------------

    async def call(
        self,
        user: str,
        *,
        system: str | None = None,
        conversation_id: str | None = None,
        options: ChatOptions | None = None,
        tools: Iterable[str] | None = None,
        params: Mapping[str, Any] | None = None,
        entity: Any = None,
    ) -> CallResult:
        """Run one logical call; failures come back as ``kind == ResultKind.ERROR``."""
        trace_id = str(uuid.uuid4())
        try:
            request = self.build_request(
                user,
                system=system,
                conversation_id=conversation_id,
                options=options,
                tools=tools,
                params=params,
                output_type=entity,
                trace_id=trace_id,
            )
        except EngineError as exc:
            return CallResult.failed(exc)
        return await self.call_request(request)

    async def call_request(self, request: Request) -> CallResult:
        t_start = time.time()
        await self._transition(request, CallState.BUILDING)
        try:
            response = await asyncio.wait_for(self._complete(request), timeout=self.call_timeout)
            result = self._project(request, response)
        except asyncio.TimeoutError:
            result = CallResult.failed(CallTimeoutError(self.call_timeout))
        except EngineError as exc:
            result = CallResult.failed(exc)

        if result.ok:
            await self._transition(request, CallState.TERMINAL)
        else:
            logger.warning("trace=%s call failed: %s", request.trace_id, result.error.message)
            await self._transition(request, CallState.FAILED, error=result.error.code)
        await self._finish(request, result.kind.value, t_start)
        return result

    async def _complete(self, request: Request) -> ChatResponse:
        rounds = 0
        # Content of tool-call rounds, prefixed to the final text.
        preamble: list[str] = []
        while True:
            await self._transition(request, CallState.CALLING, round=rounds)
            response = await self._chain.run_call(request.with_context(round=rounds), self._terminal_call)
            if not response.is_tool_call:
                if preamble and request.output_type is None:
                    response = response.model_copy(update={"content": "".join(preamble) + response.text})
                return response
            preamble.append(response.text)
            request = await self._tool_round(request, response, rounds)
            rounds += 1

    async def _terminal_call(self, request: Request) -> ChatResponse:
        t_llm = time.time()
        try:
            response = await self._llm.generate(request)
        except EngineError:
            raise
        except Exception as exc:
            raise BackendError(f"Model backend failed: {exc}") from exc
        await self._trace.emit(request.trace_id, "llm_call", {
            "round": request.context.get("round", 0),
            "latency_ms": round((time.time() - t_llm) * 1000, 2),
            "has_tool_calls": response.is_tool_call,
        })
        # Parse inside the chain so a bad payload fails before post-call advisors commit.
        if not response.is_tool_call and request.output_type is not None:
            entity = StructuredOutputConverter(request.output_type).parse(response.content)
            response = response.model_copy(update={"entity": entity})
        return response

    @staticmethod
    def _project(request: Request, response: ChatResponse) -> CallResult:
        if request.output_type is None:
            return CallResult(kind=ResultKind.TEXT, text=response.text, response=response)
        entity = response.entity
        if entity is None:
            # Short-circuited by an advisor: the terminal handler never parsed it.
            entity = StructuredOutputConverter(request.output_type).parse(response.content)
        return CallResult(kind=ResultKind.ENTITY, entity=entity, text=response.content, response=response)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def stream(
        self,
        user: str,
        *,
        system: str | None = None,
        conversation_id: str | None = None,
        options: ChatOptions | None = None,
        tools: Iterable[str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[str]:
        """Yield text fragments as they arrive. Failures raise ``EngineError``."""
        request = self.build_request(
            user,
            system=system,
            conversation_id=conversation_id,
            options=options,
            tools=tools,
            params=params,
        )
        return self.stream_request(request)

    async def stream_request(self, request: Request) -> AsyncIterator[str]:
        t_start = time.time()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.call_timeout
        outcome = CallState.FAILED.value
        await self._transition(request, CallState.BUILDING)
        try:
            rounds = 0
            while True:
                await self._transition(request, CallState.CALLING, round=rounds)
                fragments = self._chain.run_stream(request.with_context(round=rounds), self._terminal_stream)
                buffered: list[ResponseFragment] = []
                try:
                    while True:
                        fragment = await self._pull(fragments, deadline - loop.time())
                        if fragment is None:
                            break
                        buffered.append(fragment)
                        if fragment.content:
                            yield fragment.content
                finally:
                    await fragments.aclose()

                response = ChatResponse.from_fragments(buffered)
                if not response.is_tool_call:
                    outcome = CallState.TERMINAL.value
                    await self._transition(request, CallState.TERMINAL)
                    return
                request = await self._within(
                    self._tool_round(request, response, rounds), deadline - loop.time()
                )
                rounds += 1
        except EngineError as exc:
            logger.warning("trace=%s stream failed: %s", request.trace_id, exc)
            await self._transition(request, CallState.FAILED, error=exc.code)
            raise
        except (GeneratorExit, asyncio.CancelledError):
            # Consumer walked away: stop pulling, no further tool rounds.
            outcome = "cancelled"
            raise
        finally:
            await self._finish(request, outcome, t_start)

    async def _within(self, pending: Awaitable[Any], remaining: float) -> Any:
        if remaining <= 0:
            raise CallTimeoutError(self.call_timeout)
        try:
            return await asyncio.wait_for(pending, timeout=remaining)
        except asyncio.TimeoutError:
            raise CallTimeoutError(self.call_timeout) from None

    async def _pull(self, fragments: AsyncIterator[ResponseFragment], remaining: float) -> ResponseFragment | None:
        async def next_fragment() -> ResponseFragment | None:
            try:
                return await fragments.__anext__()
            except StopAsyncIteration:
                return None

        return await self._within(next_fragment(), remaining)

    async def _terminal_stream(self, request: Request) -> AsyncIterator[ResponseFragment]:
        t_llm = time.time()
        has_tool_calls = False
        try:
            async for fragment in self._llm.stream(request):
                has_tool_calls = has_tool_calls or bool(fragment.tool_calls)
                yield fragment
        except EngineError:
            raise
        except Exception as exc:
            raise BackendError(f"Model backend failed while streaming: {exc}") from exc
        await self._trace.emit(request.trace_id, "llm_call", {
            "round": request.context.get("round", 0),
            "latency_ms": round((time.time() - t_llm) * 1000, 2),
            "has_tool_calls": has_tool_calls,
            "streaming": True,
        })

    # ------------------------------------------------------------------
    # Tool rounds
    # ------------------------------------------------------------------

    async def _tool_round(self, request: Request, response: ChatResponse, rounds: int) -> Request:
        """Dispatch one round and return the augmented request."""
        if rounds >= self.max_tool_rounds:
            raise ToolRoundLimitExceeded(self.max_tool_rounds)
        await self._transition(request, CallState.TOOL_ROUND, round=rounds + 1, calls=len(response.tool_calls))
        results = await self._tools.dispatch_all(response.tool_calls, trace_id=request.trace_id)
        return request.with_tool_round(response, results)

    # ------------------------------------------------------------------
    # Binary media
    # ------------------------------------------------------------------

    async def speak(self, text: str, options: SpeechOptions | None = None) -> CallResult:
        opts = options or SpeechOptions()
        if self._media is None:
            return CallResult.failed(BackendError("No media client configured"))
        return await self._media_call(self._media.synthesize_speech(text, opts), opts.media_type)

    async def generate_image(self, prompt: str, options: ImageOptions | None = None) -> CallResult:
        opts = options or ImageOptions()
        if self._media is None:
            return CallResult.failed(BackendError("No media client configured"))
        return await self._media_call(self._media.generate_image(prompt, opts), "image/png")

    async def _media_call(self, pending: Awaitable[bytes], media_type: str) -> CallResult:
        try:
            data = await asyncio.wait_for(pending, timeout=self.call_timeout)
        except asyncio.TimeoutError:
            return CallResult.failed(CallTimeoutError(self.call_timeout))
        except EngineError as exc:
            return CallResult.failed(exc)
        except Exception as exc:
            logger.warning("media backend failed: %s", exc)
            return CallResult.failed(BackendError(f"Media backend failed: {exc}"))
        return CallResult(kind=ResultKind.MEDIA, media=data, media_type=media_type)

    # ------------------------------------------------------------------
    # Tracing
    # ------------------------------------------------------------------

    async def _transition(self, request: Request, state: CallState, **data: Any) -> None:
        logger.debug("trace=%s state=%s %s", request.trace_id, state.value, data or "")
        await self._trace.emit(request.trace_id, "state", {"state": state.value, **data})

    async def _finish(self, request: Request, outcome: str, t_start: float) -> None:
        await self._trace.emit(request.trace_id, "call_done", {
            "outcome": outcome,
            "total_latency_ms": round((time.time() - t_start) * 1000, 2),
        })
        await self._trace.flush(request.trace_id)
