"""Tests for conversation memory, the retriever, and the memory advisor."""

from __future__ import annotations

from advisor_engine.advisors.chain import AdvisorChain
from advisor_engine.advisors.memory_advisor import MessageMemoryAdvisor
from advisor_engine.engine.models import (
    ChatResponse,
    Message,
    Request,
    ResponseFragment,
    Role,
    ToolCallRequest,
)


def _request(text: str, conversation_id: str | None = "c1") -> Request:
    return Request(
        messages=(Message.system("be brief"), Message.user(text)),
        conversation_id=conversation_id,
    )


class TestInMemoryConversationMemory:
    async def test_append_and_load_in_order(self, memory):
        await memory.append("c1", [Message.user("hi"), Message.assistant("hello")])
        await memory.append("c1", [Message.user("again")])

        history = await memory.load("c1")
        assert [m.content for m in history] == ["hi", "hello", "again"]

    async def test_conversations_are_isolated(self, memory):
        await memory.append("c1", [Message.user("one")])
        assert await memory.load("c2") == []

    async def test_load_returns_copy(self, memory):
        await memory.append("c1", [Message.user("one")])
        history = await memory.load("c1")
        history.append(Message.user("injected"))
        assert len(await memory.load("c1")) == 1

    async def test_clear(self, memory):
        await memory.append("c1", [Message.user("one")])
        await memory.clear("c1")
        assert await memory.load("c1") == []
        assert memory.conversation_ids() == []


class TestRetriever:
    async def test_keyword_overlap_ranking(self, retriever):
        chunks = await retriever.retrieve("Claude Sonnet context window", k=2)
        assert len(chunks) <= 2
        assert "Claude" in chunks[0].text
        assert chunks[0].score >= chunks[-1].score

    async def test_no_overlap_returns_empty(self, retriever):
        assert await retriever.retrieve("zzzz qqqq") == []


class TestMessageMemoryAdvisor:
    async def test_history_injected_after_system_messages(self, memory):
        await memory.append("c1", [Message.user("earlier"), Message.assistant("reply")])
        seen: list[Request] = []

        async def terminal(request):
            seen.append(request)
            return ChatResponse(content="now")

        chain = AdvisorChain([MessageMemoryAdvisor(memory)])
        await chain.run_call(_request("current"), terminal)

        roles = [m.role for m in seen[0].messages]
        assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.USER]
        assert seen[0].messages[-1].content == "current"

    async def test_terminal_turn_committed(self, memory):
        async def terminal(request):
            return ChatResponse(content="hi there")

        chain = AdvisorChain([MessageMemoryAdvisor(memory)])
        await chain.run_call(_request("hello"), terminal)

        history = await memory.load("c1")
        assert [(m.role, m.content) for m in history] == [
            (Role.USER, "hello"),
            (Role.ASSISTANT, "hi there"),
        ]

    async def test_tool_call_response_not_committed(self, memory):
        async def terminal(request):
            return ChatResponse(tool_calls=(ToolCallRequest(id="t", name="kb_query"),))

        chain = AdvisorChain([MessageMemoryAdvisor(memory)])
        await chain.run_call(_request("hello"), terminal)
        assert await memory.load("c1") == []

    async def test_default_conversation_id(self, memory):
        async def terminal(request):
            return ChatResponse(content="ok")

        chain = AdvisorChain([MessageMemoryAdvisor(memory)])
        await chain.run_call(_request("hello", conversation_id=None), terminal)
        assert len(await memory.load("default")) == 2

    async def test_history_limit(self, memory):
        await memory.append("c1", [Message.user(str(i)) for i in range(10)])
        seen: list[Request] = []

        async def terminal(request):
            seen.append(request)
            return ChatResponse(content="ok")

        chain = AdvisorChain([MessageMemoryAdvisor(memory, history_limit=3)])
        await chain.run_call(_request("latest"), terminal)

        contents = [m.content for m in seen[0].messages]
        assert contents == ["be brief", "7", "8", "9", "latest"]
        assert len(await memory.load("c1")) == 12

    async def test_stream_commits_after_last_fragment(self, memory):
        async def terminal(request):
            for part in ("hi ", "there"):
                assert await memory.load("c1") == []
                yield ResponseFragment(content=part)

        chain = AdvisorChain([MessageMemoryAdvisor(memory)])
        fragments = [f async for f in chain.run_stream(_request("hello"), terminal)]

        assert "".join(f.content for f in fragments) == "hi there"
        history = await memory.load("c1")
        assert history[-1].content == "hi there"

    async def test_abandoned_stream_not_committed(self, memory):
        async def terminal(request):
            for part in ("a", "b", "c"):
                yield ResponseFragment(content=part)

        chain = AdvisorChain([MessageMemoryAdvisor(memory)])
        stream = chain.run_stream(_request("hello"), terminal)
        async for _ in stream:
            break
        await stream.aclose()
        assert await memory.load("c1") == []
