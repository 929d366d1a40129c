"""Immutable transcript of one agent run."""

from typing import List, Tuple
from pydantic import BaseModel, ConfigDict

from llm.base_client import Message, ToolCall, ToolResultBlock


class Transcript(BaseModel):
    """
    Messages sent to the completion client during one agent run.

    Every step returns a new transcript; earlier values are never mutated.
    """
    model_config = ConfigDict(frozen=True)

    messages: Tuple[Message, ...] = ()
    iteration: int = 0

    @classmethod
    def from_history(cls, messages: List[Message]) -> "Transcript":
        return cls(messages=tuple(messages))

    def with_tool_calls(self, content: str, tool_calls: List[ToolCall]) -> "Transcript":
        """Append the assistant turn that requested tools."""
        turn = Message(role="assistant", content=content, tool_calls=list(tool_calls))
        return self.model_copy(update={"messages": self.messages + (turn,)})

    def with_tool_results(self, results: List[ToolResultBlock]) -> "Transcript":
        """Append the user turn carrying tool results."""
        turn = Message(role="user", tool_results=list(results))
        return self.model_copy(update={"messages": self.messages + (turn,)})

    def next_iteration(self) -> "Transcript":
        return self.model_copy(update={"iteration": self.iteration + 1})

    def as_list(self) -> List[Message]:
        return list(self.messages)
