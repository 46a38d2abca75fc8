"""advisor_engine — LLM call pipeline with advisors, tools, memory, and tracing.

Usage::

    from advisor_engine import create_engine

    engine = create_engine()
    result = await engine.call("What is the context window of GPT-4o?")
    async for text in engine.stream("Tell me a joke", conversation_id="c1"):
        print(text, end="")
"""

from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()  # reads .env into os.environ (no-op if file missing)

from advisor_engine.advisors.chain import AdvisorChain
from advisor_engine.advisors.logging_advisor import SimpleLoggingAdvisor
from advisor_engine.advisors.memory_advisor import MessageMemoryAdvisor
from advisor_engine.config import EngineSettings, configure_logging
from advisor_engine.engine.llm import DemoMockLLMClient, LLMClient, OpenAILLMClient
from advisor_engine.engine.media import MediaClient, MockMediaClient, OpenAIMediaClient
from advisor_engine.engine.models import CallResult, ChatOptions, ResultKind
from advisor_engine.engine.orchestrator import Orchestrator
from advisor_engine.memory.in_memory import InMemoryConversationMemory, InMemoryRetriever
from advisor_engine.memory.interface import ConversationMemory
from advisor_engine.tools.builtins import CURRENT_DATETIME_TOOL, make_kb_query_tool
from advisor_engine.tools.registry import ToolRegistry
from advisor_engine.tools.tasks import TaskStore, make_task_tools
from advisor_engine.tracing.interface import NullTraceCollector, TraceCollector
from advisor_engine.tracing.jsonl_tracer import JSONLTraceCollector

__all__ = [
    "CallResult",
    "ChatOptions",
    "EngineSettings",
    "Orchestrator",
    "ResultKind",
    "create_engine",
]


def create_engine(
    settings: EngineSettings | None = None,
    *,
    with_memory: bool = True,
    memory: ConversationMemory | None = None,
    task_store: TaskStore | None = None,
    llm_client: LLMClient | None = None,
    media_client: MediaClient | None = None,
) -> Orchestrator:
    """Wire all components and return a ready-to-use Orchestrator.

    Without an API key (or with ``USE_MOCK_LLM=1``) the demo backends are
    used, so the whole pipeline runs offline.
    """
    settings = settings or EngineSettings.from_env()
    configure_logging(settings.log_level)

    # -- components --
    trace_collector: TraceCollector
    if settings.trace_dir:
        trace_collector = JSONLTraceCollector(settings.trace_dir)
    else:
        trace_collector = NullTraceCollector()

    retriever = InMemoryRetriever()
    tool_registry = ToolRegistry(trace_collector=trace_collector)
    for tool_def in make_task_tools(task_store or TaskStore()):
        tool_registry.register(tool_def)
    tool_registry.register(CURRENT_DATETIME_TOOL)
    tool_registry.register(make_kb_query_tool(retriever))

    chain = AdvisorChain([SimpleLoggingAdvisor()])
    if with_memory:
        chain.register(MessageMemoryAdvisor(memory or InMemoryConversationMemory()))

    if llm_client is None:
        if settings.use_demo_backend:
            llm_client = DemoMockLLMClient()
        else:
            llm_client = OpenAILLMClient(api_key=settings.openai_api_key, model=settings.openai_model)
    if media_client is None:
        if settings.use_demo_backend:
            media_client = MockMediaClient()
        else:
            media_client = OpenAIMediaClient(api_key=settings.openai_api_key)

    return Orchestrator(
        llm_client,
        chain=chain,
        tool_registry=tool_registry,
        media_client=media_client,
        trace_collector=trace_collector,
        default_system=settings.default_system,
        default_options=ChatOptions(temperature=settings.temperature, max_tokens=settings.max_tokens),
        max_tool_rounds=settings.max_tool_rounds,
        call_timeout=settings.call_timeout,
    )
