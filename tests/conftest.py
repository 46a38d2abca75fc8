"""Shared fixtures for advisor_engine tests."""

from __future__ import annotations

import pytest

from advisor_engine.advisors.chain import AdvisorChain
from advisor_engine.advisors.memory_advisor import MessageMemoryAdvisor
from advisor_engine.engine.media import MockMediaClient
from advisor_engine.memory.in_memory import InMemoryConversationMemory, InMemoryRetriever
from advisor_engine.tools.builtins import CURRENT_DATETIME_TOOL, make_kb_query_tool
from advisor_engine.tools.registry import ToolRegistry
from advisor_engine.tools.tasks import TaskStore, make_task_tools
from advisor_engine.tracing.jsonl_tracer import JSONLTraceCollector


@pytest.fixture
def memory():
    return InMemoryConversationMemory()


@pytest.fixture
def retriever():
    return InMemoryRetriever()


@pytest.fixture
def task_store():
    return TaskStore()


@pytest.fixture
def trace_collector(tmp_path):
    return JSONLTraceCollector(trace_dir=str(tmp_path / "traces"))


@pytest.fixture
def tool_registry(task_store, retriever, trace_collector):
    registry = ToolRegistry(trace_collector=trace_collector)
    for tool_def in make_task_tools(task_store):
        registry.register(tool_def)
    registry.register(CURRENT_DATETIME_TOOL)
    registry.register(make_kb_query_tool(retriever))
    return registry


@pytest.fixture
def memory_chain(memory):
    return AdvisorChain([MessageMemoryAdvisor(memory)])


@pytest.fixture
def media_client():
    return MockMediaClient()
