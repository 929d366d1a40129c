"""LLM client abstraction layer."""

from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall, ToolResultBlock
from .completion import CompletionClient
from .factory import create_llm_client, LLMProvider

__all__ = [
    "BaseLLMClient",
    "Message",
    "LLMResponse",
    "ToolCall",
    "ToolResultBlock",
    "CompletionClient",
    "create_llm_client",
    "LLMProvider",
]
