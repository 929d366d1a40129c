"""Anthropic Claude LLM client implementation."""

import os
import logging
from typing import Optional, List, Dict, Any

import anthropic

from errors import CompletionError
from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall

logger = logging.getLogger(__name__)


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client implementation."""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None
    ):
        """
        Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY env var)
            model: Model to use (default: claude-sonnet-4-20250514)
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.client = None

        if self.api_key:
            self.client = anthropic.AsyncAnthropic(api_key=self.api_key)
            logger.info(f"Anthropic client initialized with model: {self.model}")
        else:
            logger.warning("No Anthropic API key provided")

    @staticmethod
    def _convert_message(msg: Message) -> Dict[str, Any]:
        """Convert a Message to an Anthropic message param."""
        if msg.tool_results:
            # All results of one round-trip travel in a single user turn
            return {
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": result.tool_call_id,
                        "content": result.content,
                        "is_error": result.is_error,
                    }
                    for result in msg.tool_results
                ]
            }

        if msg.role == "assistant" and msg.tool_calls:
            content_blocks = []
            if msg.content:
                content_blocks.append({
                    "type": "text",
                    "text": msg.content
                })
            for tc in msg.tool_calls:
                content_blocks.append({
                    "type": "tool_use",
                    "id": tc.id,
                    "name": tc.name,
                    "input": tc.arguments
                })
            return {"role": "assistant", "content": content_blocks}

        return {"role": msg.role, "content": msg.content}

    @staticmethod
    def _convert_tools(tools: List[Dict]) -> List[Dict[str, Any]]:
        """Convert OpenAI-style function definitions to Anthropic tools."""
        anthropic_tools = []
        for tool in tools:
            if tool.get("type") == "function":
                func = tool["function"]
                anthropic_tools.append({
                    "name": func["name"],
                    "description": func.get("description", ""),
                    "input_schema": func.get("parameters", {"type": "object", "properties": {}})
                })
        return anthropic_tools

    async def chat(
        self,
        messages: List[Message],
        system: Optional[str] = None,
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096
    ) -> LLMResponse:
        """Send chat completion request to Anthropic."""
        if not self.client:
            raise CompletionError("Anthropic client not initialized. Check API key.", "anthropic")

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [self._convert_message(msg) for msg in messages],
        }

        if system:
            kwargs["system"] = system

        if tools:
            anthropic_tools = self._convert_tools(tools)
            if anthropic_tools:
                kwargs["tools"] = anthropic_tools

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise CompletionError(f"Anthropic API error: {e}", "anthropic") from e

        # Extract content and tool calls
        text_parts = []
        tool_calls = []

        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                if isinstance(block.input, dict):
                    tool_calls.append(ToolCall(id=block.id, name=block.name, arguments=block.input))
                else:
                    logger.warning(f"Non-object tool input for {block.name}")
                    tool_calls.append(ToolCall(
                        id=block.id,
                        name=block.name,
                        arguments={},
                        arguments_error="Malformed arguments: expected a JSON object"
                    ))

        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            }

        return LLMResponse(
            content="\n".join(text_parts),
            tool_calls=tool_calls if tool_calls else None,
            usage=usage,
            finish_reason=response.stop_reason
        )

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "anthropic"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
