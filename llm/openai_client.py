"""OpenAI LLM client implementation."""

import os
import json
import logging
from typing import Optional, List, Dict, Any

import openai

from errors import CompletionError
from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client implementation."""

    DEFAULT_MODEL = "gpt-4o"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY env var)
            model: Model to use (default: gpt-4o)
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.client = None

        if self.api_key:
            self.client = openai.AsyncOpenAI(api_key=self.api_key)
            logger.info(f"OpenAI client initialized with model: {self.model}")
        else:
            logger.warning("No OpenAI API key provided")

    @staticmethod
    def _convert_messages(messages: List[Message], system: Optional[str]) -> List[Dict[str, Any]]:
        """Convert Messages to OpenAI chat format."""
        openai_messages = []
        if system:
            openai_messages.append({"role": "system", "content": system})

        for msg in messages:
            if msg.tool_results:
                # OpenAI expects one tool message per call, in request order
                for result in msg.tool_results:
                    openai_messages.append({
                        "role": "tool",
                        "tool_call_id": result.tool_call_id,
                        "content": result.content
                    })
                continue

            openai_msg = {"role": msg.role, "content": msg.content}
            if msg.tool_calls:
                openai_msg["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments)
                        }
                    }
                    for tc in msg.tool_calls
                ]
            openai_messages.append(openai_msg)

        return openai_messages

    async def chat(
        self,
        messages: List[Message],
        system: Optional[str] = None,
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096
    ) -> LLMResponse:
        """Send chat completion request to OpenAI."""
        if not self.client:
            raise CompletionError("OpenAI client not initialized. Check API key.", "openai")

        kwargs = {
            "model": self.model,
            "messages": self._convert_messages(messages, system),
            "temperature": temperature,
            "max_completion_tokens": max_tokens,
        }

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise CompletionError(f"OpenAI API error: {e}", "openai") from e

        if not response.choices:
            raise CompletionError("OpenAI returned no choices", "openai")

        choice = response.choices[0]
        content = choice.message.content or ""

        tool_calls = None
        if choice.message.tool_calls:
            tool_calls = []
            for tc in choice.message.tool_calls:
                arguments, arguments_error = {}, None
                try:
                    arguments = json.loads(tc.function.arguments or "{}")
                except json.JSONDecodeError as e:
                    arguments_error = f"Malformed arguments (invalid JSON): {e}"
                    logger.warning(f"Undecodable arguments for {tc.function.name}: {e}")
                if arguments_error is None and not isinstance(arguments, dict):
                    arguments, arguments_error = {}, "Malformed arguments: expected a JSON object"
                tool_calls.append(ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=arguments,
                    arguments_error=arguments_error
                ))

        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=content,
            tool_calls=tool_calls,
            usage=usage,
            finish_reason=choice.finish_reason
        )

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "openai"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
