"""Tests for the CLI adapter."""

from __future__ import annotations

import io

from advisor_engine.adapters.cli.main import run_cli
from advisor_engine.engine.llm import MockLLMClient
from advisor_engine.engine.models import ChatResponse
from advisor_engine.engine.orchestrator import Orchestrator


class TestRunCli:
    async def test_streams_answer(self):
        out = io.StringIO()
        engine = Orchestrator(MockLLMClient([ChatResponse(content="four words right here")]))

        code = await run_cli("hello", engine=engine, out=out)

        assert code == 0
        assert out.getvalue() == "four words right here\n"

    async def test_error_goes_to_stderr(self, capsys):
        out = io.StringIO()
        engine = Orchestrator(MockLLMClient([RuntimeError("offline")]))

        code = await run_cli("hello", engine=engine, out=out)

        assert code == 1
        assert out.getvalue() == ""
        assert "backend_error" in capsys.readouterr().err
