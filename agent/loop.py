"""Agent loop: call the model, dispatch tools, repeat until final text."""

import json
import asyncio
import logging
from typing import List, Optional
from pydantic import BaseModel

from errors import AgentError, CompactionError
from llm.base_client import ToolCall, ToolResultBlock
from tools.base import ToolResult
from .transcript import Transcript

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm sorry, I got stuck in a loop. Please try rephrasing your question."
EMPTY_REPLY = "(no response)"


class AgentResult(BaseModel):
    """Result of one agent run."""
    reply: str
    iterations_used: int
    tools_called: List[str] = []
    exhausted: bool = False
    transcript: Transcript = Transcript()


class AgentLoop:
    """
    Bounded tool-use loop for one conversation.

    The model is called with the conversation plus every registered tool.
    Requested tools run concurrently and their results go back to the model
    until it answers with plain text or the iteration budget runs out.
    """

    MAX_ITERATIONS = 10

    def __init__(
        self,
        completion_client,
        registry,
        context,
        max_iterations: int = MAX_ITERATIONS,
        tool_timeout: Optional[float] = 30.0
    ):
        """
        Initialize agent loop.

        Args:
            completion_client: Client with `complete(messages, tools)`
            registry: ToolRegistry used to resolve tool calls
            context: ConversationContextManager of this conversation
            max_iterations: Maximum completion calls per user message
            tool_timeout: Per-tool timeout in seconds
        """
        self.completion_client = completion_client
        self.registry = registry
        self.context = context
        self.max_iterations = max_iterations
        self.tool_timeout = tool_timeout

    async def run(self, user_message: str) -> str:
        """Process one user message and return the reply text."""
        result = await self.run_turn(user_message)
        return result.reply

    async def run_turn(self, user_message: str) -> AgentResult:
        """
        Run the agent loop for one user message.

        Raises:
            CompletionError: If the completion provider fails
            AgentError: If anything else fails before a reply is produced

            In both cases the user message is removed from history again.
        """
        user_entry = self.context.add_message("user", user_message)
        transcript = Transcript()
        tools_called: List[str] = []

        try:
            if self.context.needs_pruning():
                try:
                    await self.context.prune()
                except CompactionError as e:
                    logger.warning(f"Skipping context pruning this turn: {e}")

            transcript = Transcript.from_history(self.context.get_messages())
            tool_definitions = self.registry.get_definitions()

            while transcript.iteration < self.max_iterations:
                transcript = transcript.next_iteration()
                logger.info(f"Agent iteration {transcript.iteration}/{self.max_iterations}")

                response = await self.completion_client.complete(transcript.as_list(), tool_definitions)

                if not response.tool_calls:
                    reply = response.content or EMPTY_REPLY
                    assistant_entry = self.context.add_message("assistant", reply)
                    await self._persist(self.context.persist_exchange(user_entry, assistant_entry))
                    logger.info(f"Agent completed in {transcript.iteration} iterations")
                    return AgentResult(
                        reply=reply,
                        iterations_used=transcript.iteration,
                        tools_called=tools_called,
                        transcript=transcript
                    )

                transcript = transcript.with_tool_calls(response.content, response.tool_calls)
                results = await self.dispatch_tool_calls(response.tool_calls)
                tools_called.extend(call.name for call in response.tool_calls)
                transcript = transcript.with_tool_results(results)
        except AgentError:
            self.context.discard(user_entry)
            raise
        except Exception as e:
            self.context.discard(user_entry)
            logger.exception(f"Agent turn failed for conversation {self.context.conversation_id}")
            raise AgentError(f"Agent turn failed: {e}") from e

        logger.warning(
            f"Agent loop hit max iterations ({self.max_iterations}) "
            f"for conversation {self.context.conversation_id}"
        )
        await self._persist(self.context.persist_entry(user_entry))
        return AgentResult(
            reply=FALLBACK_REPLY,
            iterations_used=transcript.iteration,
            tools_called=tools_called,
            exhausted=True,
            transcript=transcript
        )

    async def dispatch_tool_calls(self, tool_calls: List[ToolCall]) -> List[ToolResultBlock]:
        """Run sibling tool calls concurrently; results keep request order."""
        results = await asyncio.gather(*(self._invoke(call) for call in tool_calls))
        return [
            ToolResultBlock(
                tool_call_id=call.id,
                content=result.to_content(),
                is_error=not result.success
            )
            for call, result in zip(tool_calls, results)
        ]

    async def _invoke(self, call: ToolCall) -> ToolResult:
        tool = self.registry.lookup(call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {call.name}")
            return ToolResult.fail(call.name, f"Unknown tool: {call.name}")

        if call.arguments_error is not None:
            logger.warning(f"Tool {call.name} called with malformed arguments")
            return ToolResult.fail(call.name, call.arguments_error)

        logger.info(f"Tool: {call.name} {json.dumps(call.arguments, default=str)[:200]}")
        return await tool.invoke(call.arguments, timeout=self.tool_timeout)

    async def _persist(self, write):
        # Storage failures are logged only; the reply still goes out
        try:
            await write
        except Exception as e:
            logger.error(f"Failed to persist conversation turn: {e}")
