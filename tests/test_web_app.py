"""Tests for the FastAPI adapter."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from advisor_engine.adapters.web_fastapi.app import create_app
from advisor_engine.advisors.chain import AdvisorChain
from advisor_engine.advisors.guard_advisor import InputValidationAdvisor
from advisor_engine.engine.llm import MockLLMClient
from advisor_engine.engine.models import ChatResponse
from advisor_engine.engine.orchestrator import Orchestrator


@pytest.fixture
def client(tool_registry, memory_chain, media_client):
    llm = MockLLMClient([ChatResponse(content="Hello from the model")])
    engine = Orchestrator(llm, chain=memory_chain, tool_registry=tool_registry, media_client=media_client)
    return TestClient(create_app(engine))


class TestWebApp:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_chat(self, client):
        response = client.post("/chat", json={"message": "hi", "conversation_id": "web-1"})
        assert response.status_code == 200
        assert response.json() == {"kind": "text", "text": "Hello from the model"}

    def test_chat_error_maps_status(self):
        chain = AdvisorChain([InputValidationAdvisor(blocked_terms=["secret"])])
        engine = Orchestrator(MockLLMClient([]), chain=chain)
        client = TestClient(create_app(engine))

        response = client.post("/chat", json={"message": "the secret"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "chain_aborted"

    def test_chat_requires_message(self, client):
        assert client.post("/chat", json={}).status_code == 422

    def test_chat_stream_sse(self, client):
        with client.stream("POST", "/chat/stream", json={"message": "hi"}) as response:
            assert response.status_code == 200
            assert response.headers["content-type"].startswith("text/event-stream")
            body = "".join(response.iter_text())

        assert "event: token" in body
        assert body.rstrip().endswith("event: done\ndata: {}")
        assert "Hello" in body

    def test_chat_stream_error_event(self):
        engine = Orchestrator(MockLLMClient([RuntimeError("down")]))
        client = TestClient(create_app(engine))

        with client.stream("POST", "/chat/stream", json={"message": "hi"}) as response:
            body = "".join(response.iter_text())

        assert "event: error" in body
        assert "backend_error" in body

    def test_speak(self, client):
        response = client.get("/speak", params={"text": "hello"})
        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content == b"ID3mock-audio"

    def test_speak_without_media_client(self):
        client = TestClient(create_app(Orchestrator(MockLLMClient([]))))
        response = client.get("/speak", params={"text": "hello"})
        assert response.status_code == 502
