"""Base LLM client interface."""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any
from pydantic import BaseModel


class ToolCall(BaseModel):
    """Tool call from LLM."""
    id: str
    name: str
    arguments: Dict[str, Any]
    arguments_error: Optional[str] = None  # Set when the provider sent undecodable arguments


class ToolResultBlock(BaseModel):
    """Result of one tool call, keyed to the originating call ID."""
    tool_call_id: str
    content: str
    is_error: bool = False


class Message(BaseModel):
    """Chat message."""
    role: str  # "user" or "assistant"
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = None  # For assistant messages with tool calls
    tool_results: Optional[List[ToolResultBlock]] = None  # For the user turn carrying tool output


class LLMResponse(BaseModel):
    """Response from LLM."""
    content: str
    tool_calls: Optional[List[ToolCall]] = None
    usage: Optional[Dict[str, int]] = None
    finish_reason: Optional[str] = None


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def chat(
        self,
        messages: List[Message],
        system: Optional[str] = None,
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096
    ) -> LLMResponse:
        """
        Send chat completion request.

        Args:
            messages: List of messages in conversation
            system: Optional system prompt
            tools: Optional list of tool definitions for function calling
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens in response

        Returns:
            LLMResponse with content and optional tool calls

        Raises:
            CompletionError: If the provider call fails
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Get the name of the LLM provider."""
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the name of the model being used."""
        pass
