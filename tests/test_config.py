"""Tests for EngineSettings, logging setup, and create_engine wiring."""

from __future__ import annotations

import logging

import pytest

from advisor_engine import create_engine
from advisor_engine.advisors.memory_advisor import MessageMemoryAdvisor
from advisor_engine.config import EngineSettings, configure_logging
from advisor_engine.engine.llm import DemoMockLLMClient
from advisor_engine.engine.models import ResultKind
from advisor_engine.tracing.interface import NullTraceCollector


class TestEngineSettings:
    def test_defaults(self):
        settings = EngineSettings.from_env({})
        assert settings.openai_model == "gpt-4o-mini"
        assert settings.max_tool_rounds == 6
        assert settings.call_timeout == 60.0
        assert settings.trace_dir is None
        assert settings.use_demo_backend

    def test_values_read(self):
        settings = EngineSettings.from_env({
            "OPENAI_API_KEY": "sk-test",
            "USE_MOCK_LLM": "true",
            "ENGINE_MAX_TOOL_ROUNDS": "3",
            "ENGINE_CALL_TIMEOUT": "2.5",
            "ENGINE_TEMPERATURE": "0.1",
            "ENGINE_LOG_LEVEL": "debug",
        })
        assert settings.max_tool_rounds == 3
        assert settings.call_timeout == 2.5
        assert settings.temperature == 0.1
        assert settings.log_level == "DEBUG"
        assert settings.use_mock_llm

    def test_key_without_mock_uses_real_backend(self):
        settings = EngineSettings.from_env({"OPENAI_API_KEY": "sk-test"})
        assert not settings.use_demo_backend

    def test_non_numeric_value_names_variable(self):
        with pytest.raises(ValueError, match="ENGINE_MAX_TOOL_ROUNDS"):
            EngineSettings.from_env({"ENGINE_MAX_TOOL_ROUNDS": "many"})


class TestConfigureLogging:
    def test_idempotent(self):
        configure_logging("INFO")
        configure_logging("DEBUG")
        package_logger = logging.getLogger("advisor_engine")
        marked = [h for h in package_logger.handlers if getattr(h, "_advisor_engine", False)]
        assert len(marked) == 1
        assert package_logger.level == logging.DEBUG


class TestCreateEngine:
    def test_demo_wiring(self):
        engine = create_engine(EngineSettings(use_mock_llm=True))

        assert isinstance(engine._llm, DemoMockLLMClient)
        assert isinstance(engine._trace, NullTraceCollector)
        assert {"create_task", "current_datetime", "kb_query"} <= set(engine.tools.names)
        assert any(isinstance(a, MessageMemoryAdvisor) for a in engine.chain.advisors)

    def test_without_memory(self):
        engine = create_engine(EngineSettings(use_mock_llm=True), with_memory=False)
        assert not any(isinstance(a, MessageMemoryAdvisor) for a in engine.chain.advisors)

    async def test_demo_tool_loop(self):
        engine = create_engine(EngineSettings(use_mock_llm=True))

        result = await engine.call("Grok 3 context window")

        assert result.kind is ResultKind.TEXT
        assert result.text.startswith("Based on the gathered information")
        assert "1000000" in result.text

    async def test_trace_dir_enables_jsonl(self, tmp_path):
        engine = create_engine(EngineSettings(use_mock_llm=True, trace_dir=str(tmp_path)))

        await engine.call("What day is it today?")
        assert len(list(tmp_path.glob("*.jsonl"))) == 1
