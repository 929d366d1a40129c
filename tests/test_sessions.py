"""Tests for per-conversation sessions."""

import asyncio

from agent.loop import AgentLoop
from agent.sessions import AgentSession, SessionManager
from llm.completion import CompletionClient
from memory.context_manager import ConversationContextManager
from tools.registry import ToolRegistry
from fakes import InMemoryStore, ScriptedLLMClient, char_tokens, text_response


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestSessionManager:
    """Test session creation, isolation and eviction."""

    def setup_method(self):
        self.store = InMemoryStore()
        self.llm = ScriptedLLMClient([text_response("ok")], repeat_last=True)
        self.client = CompletionClient(self.llm, timeout_seconds=None)
        self.registry = ToolRegistry()
        self.clock = FakeClock()
        self.created = []

    async def factory(self, conversation_id):
        self.created.append(conversation_id)
        context = await ConversationContextManager.create(
            conversation_id, self.store, self.client, token_counter=char_tokens
        )
        agent = AgentLoop(self.client, self.registry, context)
        return AgentSession(conversation_id=conversation_id, context=context, agent=agent)

    def make_manager(self, **kwargs):
        return SessionManager(self.factory, clock=self.clock, **kwargs)

    async def test_session_reused_for_same_conversation(self):
        manager = self.make_manager()

        first = await manager.get("1")
        second = await manager.get("1")

        assert first is second
        assert self.created == ["1"]

    async def test_conversations_have_separate_histories(self):
        manager = self.make_manager()

        await manager.run("1", "I am user one")
        await manager.run("2", "I am user two")

        one = await manager.get("1")
        two = await manager.get("2")
        assert [e.content for e in one.context.history] == ["I am user one", "ok"]
        assert [e.content for e in two.context.history] == ["I am user two", "ok"]
        assert [m.content for m in self.llm.calls[1]["messages"]] == ["I am user two"]

    async def test_run_returns_agent_result(self):
        manager = self.make_manager()

        result = await manager.run("1", "hello")

        assert result.reply == "ok"
        assert result.iterations_used == 1

    async def test_concurrent_creation_builds_one_session(self):
        manager = self.make_manager()

        first, second = await asyncio.gather(manager.get("1"), manager.get("1"))

        assert first is second
        assert self.created == ["1"]

    async def test_turns_of_one_conversation_are_serialized(self):
        manager = self.make_manager()
        active = []
        overlaps = []

        class SlowClient(ScriptedLLMClient):
            async def chat(self, *args, **kwargs):
                if active:
                    overlaps.append(True)
                active.append(True)
                await asyncio.sleep(0.02)
                active.pop()
                return await super().chat(*args, **kwargs)

        self.client.llm_client = SlowClient([text_response("ok")], repeat_last=True)

        await asyncio.gather(manager.run("1", "first"), manager.run("1", "second"))

        assert overlaps == []
        session = await manager.get("1")
        assert [e.content for e in session.context.history] == ["first", "ok", "second", "ok"]

    async def test_idle_sessions_evicted(self):
        manager = self.make_manager(idle_seconds=60)
        await manager.get("1")

        self.clock.now += 61
        await manager.get("2")

        assert "1" not in manager
        assert "2" in manager

    async def test_evicted_conversation_reloads_from_storage(self):
        manager = self.make_manager(idle_seconds=60)
        await manager.run("1", "remember me")

        self.clock.now += 120
        assert manager.evict_idle() == 1

        session = await manager.get("1")
        assert [e.content for e in session.context.history] == ["remember me", "ok"]
        assert self.created == ["1", "1"]

    async def test_overflow_evicts_least_recently_used(self):
        manager = self.make_manager(max_sessions=2)

        await manager.get("1")
        await manager.get("2")
        await manager.get("1")
        await manager.get("3")

        assert len(manager) == 2
        assert "2" not in manager
        assert "1" in manager and "3" in manager

    async def test_checked_out_session_is_never_evicted(self):
        manager = self.make_manager(max_sessions=1, idle_seconds=60)

        async with manager.checkout("1") as held:
            assert held.busy and not held.lock.locked()
            self.clock.now += 61
            await manager.get("2")

            assert "1" in manager
            assert "2" in manager

        assert held.active == 0
        assert held.last_used == self.clock.now
        await manager.get("3")
        assert len(manager) == 1
        assert "3" in manager

    async def test_session_waiting_for_its_lock_survives_other_traffic(self):
        manager = self.make_manager(max_sessions=1)
        session = await manager.get("1")

        await session.lock.acquire()
        waiting = asyncio.ensure_future(manager.run("1", "queued"))
        await asyncio.sleep(0)
        session.lock.release()

        await manager.get("2")
        result = await waiting

        assert result.reply == "ok"
        assert "1" in manager
        assert self.created == ["1", "2"]

    async def test_compact_runs_on_session_context(self):
        self.store.seed("1", [("user", f"turn {i}") for i in range(6)])
        manager = self.make_manager()

        status = await manager.compact("1")

        assert status.startswith("Compacted: 6 messages")
        session = await manager.get("1")
        assert len(session.context) == 5
