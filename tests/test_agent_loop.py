"""Tests for the agent loop."""

import json
import asyncio

import pytest

from errors import AgentError, CompletionError
from agent.loop import AgentLoop, EMPTY_REPLY, FALLBACK_REPLY
from llm.base_client import LLMResponse, ToolCall
from llm.completion import CompletionClient
from memory.context_manager import ConversationContextManager
from tools.base import Tool
from tools.registry import ToolRegistry
from tools.schema import NumberParam, ObjectParam, StringParam
from fakes import InMemoryStore, ScriptedLLMClient, char_tokens, text_response, tool_response

CONVERSATION = "7"
SENTINEL = "SENTINEL-2031-04-05T10:00:00"


class SentinelTimeTool(Tool):
    name = "get_current_time"
    description = "Get the current date and time"

    def __init__(self):
        self.calls = 0

    async def execute(self) -> str:
        self.calls += 1
        return SENTINEL


class DelayedEchoTool(Tool):
    name = "echo"
    description = "Echo text back after a delay"
    parameters = ObjectParam(
        properties={
            "text": StringParam(description="Text to echo"),
            "delay": NumberParam(description="Seconds to wait", minimum=0),
        },
        required=["text"]
    )

    def __init__(self):
        self.finished = []

    async def execute(self, text: str, delay: float = 0) -> str:
        await asyncio.sleep(delay)
        self.finished.append(text)
        return f"echo: {text}"


class BrokenTool(Tool):
    name = "broken"
    description = "Always fails"

    async def execute(self) -> str:
        raise RuntimeError("disk on fire")


class HangingTool(Tool):
    name = "hang"
    description = "Never finishes"

    async def execute(self) -> str:
        await asyncio.sleep(60)
        return "unreachable"


class TestAgentLoopBase:
    """Shared fixtures for agent loop tests."""

    def setup_method(self):
        self.store = InMemoryStore()
        self.time_tool = SentinelTimeTool()
        self.echo_tool = DelayedEchoTool()
        self.registry = ToolRegistry()
        for tool in (self.time_tool, self.echo_tool, BrokenTool(), HangingTool()):
            self.registry.register(tool)
        self.registry.freeze()

    async def make_agent(self, responses, history=None, max_iterations=10, tool_timeout=5.0,
                         repeat_last=False, **context_kwargs):
        self.llm = ScriptedLLMClient(responses, repeat_last=repeat_last)
        client = CompletionClient(self.llm, timeout_seconds=None)
        if history:
            self.store.seed(CONVERSATION, history)
        self.context = await ConversationContextManager.create(
            CONVERSATION, self.store, client, token_counter=char_tokens, **context_kwargs
        )
        return AgentLoop(client, self.registry, self.context,
                         max_iterations=max_iterations, tool_timeout=tool_timeout)

    def tool_results_of(self, call_index):
        """Tool results sent in the last message of a recorded completion call."""
        last = self.llm.calls[call_index]["messages"][-1]
        return last.tool_results


class TestFinalText(TestAgentLoopBase):
    """Test turns answered without tools."""

    async def test_plain_text_reply(self):
        agent = await self.make_agent([text_response("4")])

        reply = await agent.run("What's 2+2?")

        assert reply == "4"
        assert [(e.role, e.content) for e in self.context.history] == [
            ("user", "What's 2+2?"),
            ("assistant", "4"),
        ]

    async def test_exchange_is_persisted(self):
        agent = await self.make_agent([text_response("4")], history=[("user", "hi"), ("assistant", "hello")])

        await agent.run("What's 2+2?")

        rows = self.store.rows_for(CONVERSATION)
        assert [(r.role, r.content) for r in rows[-2:]] == [("user", "What's 2+2?"), ("assistant", "4")]
        assert len(self.context) == 4

    async def test_history_and_tools_sent_to_model(self):
        agent = await self.make_agent([text_response("ok")], history=[("user", "earlier"), ("assistant", "reply")])

        await agent.run("now")

        call = self.llm.calls[0]
        assert [m.content for m in call["messages"]] == ["earlier", "reply", "now"]
        names = [d["function"]["name"] for d in call["tools"]]
        assert names == ["get_current_time", "echo", "broken", "hang"]
        assert call["system"]

    async def test_empty_reply_gets_placeholder(self):
        agent = await self.make_agent([text_response("")])

        assert await agent.run("hello?") == EMPTY_REPLY

    async def test_persist_failure_still_replies(self):
        agent = await self.make_agent([text_response("still here")])
        self.store.fail_writes = True

        assert await agent.run("hi") == "still here"
        assert len(self.context) == 2


class TestToolDispatch(TestAgentLoopBase):
    """Test tool calls within a turn."""

    async def test_tool_result_reaches_second_call(self):
        agent = await self.make_agent([
            tool_response(("call_1", "get_current_time", {})),
            text_response(f"It is {SENTINEL}"),
        ])

        result = await agent.run_turn("What time is it?")

        assert result.reply == f"It is {SENTINEL}"
        assert result.iterations_used == 2
        assert result.tools_called == ["get_current_time"]
        assert self.time_tool.calls == 1
        assert len(self.llm.calls) == 2

        second = self.llm.calls[1]["messages"]
        assert second[-2].role == "assistant"
        assert second[-2].tool_calls[0].id == "call_1"
        results = self.tool_results_of(1)
        assert second[-1].role == "user"
        assert [r.tool_call_id for r in results] == ["call_1"]
        assert SENTINEL in results[0].content
        assert results[0].is_error is False

    async def test_only_final_text_enters_history(self):
        agent = await self.make_agent([
            tool_response(("call_1", "get_current_time", {}), text="Checking."),
            text_response("Done."),
        ])

        await agent.run("time?")

        assert [(e.role, e.content) for e in self.context.history] == [("user", "time?"), ("assistant", "Done.")]

    async def test_results_keep_request_order(self):
        agent = await self.make_agent([
            tool_response(
                ("id1", "echo", {"text": "slow", "delay": 0.05}),
                ("id2", "echo", {"text": "fast", "delay": 0}),
            ),
            text_response("done"),
        ])

        await agent.run("echo twice")

        assert self.echo_tool.finished == ["fast", "slow"]
        results = self.tool_results_of(1)
        assert [r.tool_call_id for r in results] == ["id1", "id2"]
        assert [r.content for r in results] == ["echo: slow", "echo: fast"]

    async def test_sibling_calls_run_concurrently(self):
        agent = await self.make_agent([
            tool_response(
                ("a", "echo", {"text": "one", "delay": 0.2}),
                ("b", "echo", {"text": "two", "delay": 0.2}),
                ("c", "echo", {"text": "three", "delay": 0.2}),
            ),
            text_response("done"),
        ])

        loop = asyncio.get_running_loop()
        started = loop.time()
        await agent.run("echo thrice")

        assert loop.time() - started < 0.5

    async def test_unknown_tool_becomes_error_result(self):
        agent = await self.make_agent([
            tool_response(("x1", "launch_rockets", {})),
            text_response("I can't do that."),
        ])

        reply = await agent.run("launch")

        assert reply == "I can't do that."
        results = self.tool_results_of(1)
        assert results[0].is_error is True
        assert json.loads(results[0].content) == {"error": "Unknown tool: launch_rockets"}

    async def test_tool_exception_becomes_error_result(self):
        agent = await self.make_agent([
            tool_response(("b1", "broken", {})),
            text_response("That failed."),
        ])

        assert await agent.run("break it") == "That failed."
        results = self.tool_results_of(1)
        assert results[0].is_error is True
        assert "disk on fire" in json.loads(results[0].content)["error"]

    async def test_invalid_arguments_are_rejected_before_execute(self):
        agent = await self.make_agent([
            tool_response(("e1", "echo", {"delay": "soon"})),
            text_response("Let me fix that."),
        ])

        await agent.run("echo")

        assert self.echo_tool.finished == []
        payload = json.loads(self.tool_results_of(1)[0].content)
        fields = {problem["field"] for problem in payload["details"]}
        assert fields == {"text", "delay"}

    async def test_malformed_arguments_go_back_to_model(self):
        bad_call = ToolCall(
            id="m1",
            name="get_current_time",
            arguments={},
            arguments_error="Malformed arguments (invalid JSON): Expecting property name"
        )
        agent = await self.make_agent([
            LLMResponse(content="", tool_calls=[bad_call], finish_reason="tool_use"),
            text_response("fixed it"),
        ])

        reply = await agent.run("time?")

        assert reply == "fixed it"
        assert self.time_tool.calls == 0
        results = self.tool_results_of(1)
        assert results[0].tool_call_id == "m1"
        assert results[0].is_error is True
        assert json.loads(results[0].content)["error"].startswith("Malformed arguments")
        assert [(r.role, r.content) for r in self.store.rows_for(CONVERSATION)] == [
            ("user", "time?"), ("assistant", "fixed it")
        ]

    async def test_tool_timeout(self):
        agent = await self.make_agent([
            tool_response(("h1", "hang", {})),
            text_response("It took too long."),
        ], tool_timeout=0.05)

        assert await agent.run("wait") == "It took too long."
        payload = json.loads(self.tool_results_of(1)[0].content)
        assert payload["error"] == "Tool execution timed out after 0.05s"


class TestTermination(TestAgentLoopBase):
    """Test the iteration bound and failure handling."""

    async def test_exhaustion_returns_fallback(self):
        agent = await self.make_agent(
            [tool_response(("loop", "get_current_time", {}))], max_iterations=3, repeat_last=True
        )

        result = await agent.run_turn("spin forever")

        assert result.reply == FALLBACK_REPLY
        assert result.exhausted is True
        assert result.iterations_used == 3
        assert len(self.llm.calls) == 3
        assert self.time_tool.calls == 3

    async def test_exhaustion_persists_user_message_only(self):
        agent = await self.make_agent(
            [tool_response(("loop", "get_current_time", {}))], max_iterations=2, repeat_last=True
        )

        await agent.run("spin")

        assert [(r.role, r.content) for r in self.store.rows_for(CONVERSATION)] == [("user", "spin")]
        assert [(e.role, e.content) for e in self.context.history] == [("user", "spin")]

    async def test_default_budget_is_ten_calls(self):
        agent = await self.make_agent([tool_response(("loop", "get_current_time", {}))], repeat_last=True)

        assert await agent.run("spin") == FALLBACK_REPLY
        assert len(self.llm.calls) == 10

    async def test_completion_failure_rolls_back_user_message(self):
        agent = await self.make_agent([CompletionError("upstream 500", "scripted")], history=[("user", "old")])

        with pytest.raises(CompletionError):
            await agent.run("new")

        assert [e.content for e in self.context.history] == ["old"]
        assert [r.content for r in self.store.rows_for(CONVERSATION)] == ["old"]

    async def test_unexpected_failure_is_typed_and_rolled_back(self):
        agent = await self.make_agent([text_response("never sent")], history=[("user", "old")])

        def broken_tokenizer(text):
            raise OSError("tokenizer data unavailable")

        self.context.count_tokens = broken_tokenizer

        with pytest.raises(AgentError, match="tokenizer data unavailable") as exc_info:
            await agent.run("new")

        assert isinstance(exc_info.value.__cause__, OSError)
        assert [e.content for e in self.context.history] == ["old"]
        assert [r.content for r in self.store.rows_for(CONVERSATION)] == ["old"]
        assert self.llm.calls == []


class TestPruningDuringTurn(TestAgentLoopBase):
    """Test the pre-completion prune step."""

    async def test_prunes_before_completion(self):
        history = [("user" if i % 2 == 0 else "assistant", f"old {i} " + "z" * 40) for i in range(10)]
        agent = await self.make_agent(
            [text_response("Earlier we talked."), text_response("answer")],
            history=history,
            max_context_tokens=500
        )

        assert await agent.run("question") == "answer"

        summary_call, answer_call = self.llm.calls
        assert summary_call["tools"] is None
        assert answer_call["messages"][0].content == "[Context Summary] Earlier we talked."
        assert answer_call["messages"][-1].content == "question"
        # summary + 5 kept old entries + the new question
        assert len(answer_call["messages"]) == 7

    async def test_prune_failure_does_not_block_turn(self):
        history = [("user", f"old {i} " + "z" * 40) for i in range(10)]
        agent = await self.make_agent(
            [text_response("   "), text_response("answer")],
            history=history,
            max_context_tokens=500
        )

        assert await agent.run("question") == "answer"
        assert len(self.llm.calls[1]["messages"]) == 11
