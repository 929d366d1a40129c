"""Completion client: one LLM call with a freshly assembled system prompt."""

import asyncio
import logging
from typing import Dict, List, Optional

from errors import CompletionError
from .base_client import BaseLLMClient, LLMResponse, Message
from .prompts import BASE_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class CompletionClient:
    """
    Wraps a provider client with per-call system prompt assembly.

    The system prompt is rebuilt on every call from the base instructions,
    the user's profile facts and the most recent memory facts, so the model
    always sees current state.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        store=None,
        base_prompt: str = BASE_SYSTEM_PROMPT,
        memory_limit: int = 10,
        timeout_seconds: Optional[float] = 120.0,
        max_tokens: int = 4096,
        temperature: float = 0.7
    ):
        """
        Initialize completion client.

        Args:
            llm_client: Provider client that performs the request
            store: Optional store providing profile and memory rows
            base_prompt: Static instruction set
            memory_limit: Number of recent memories injected per call
            timeout_seconds: Per-call timeout (None disables it)
            max_tokens: Maximum tokens per response
            temperature: Sampling temperature
        """
        self.llm_client = llm_client
        self.store = store
        self.base_prompt = base_prompt
        self.memory_limit = memory_limit
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def build_system_prompt(self) -> str:
        """Merge base instructions with current profile and memory facts."""
        prompt = self.base_prompt
        if self.store is None:
            return prompt

        try:
            profile = await asyncio.to_thread(self.store.get_profile)
            memories = await asyncio.to_thread(self.store.get_recent_memories, self.memory_limit)
        except Exception as e:
            logger.warning(f"Could not load profile/memories for system prompt: {e}")
            return prompt

        if profile:
            prompt += "\n\n## About the User\n"
            for fact in profile:
                prompt += f"- **{fact.key}**: {fact.value}\n"

        if memories:
            prompt += "\n\n## Recent Memories\n"
            for mem in memories:
                prompt += f"- [{mem.category}] {mem.content}\n"

        return prompt

    async def complete(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None
    ) -> LLMResponse:
        """
        Run one completion request.

        Args:
            messages: Ordered conversation messages
            tools: Tool definitions available to the model

        Returns:
            LLMResponse holding final text or tool calls

        Raises:
            CompletionError: On provider failure or timeout
        """
        system_prompt = await self.build_system_prompt()
        provider = self.llm_client.get_provider_name()

        try:
            return await asyncio.wait_for(
                self.llm_client.chat(
                    messages=messages,
                    system=system_prompt,
                    tools=tools or None,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens
                ),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error(f"Completion call to {provider} timed out after {self.timeout_seconds}s")
            raise CompletionError(
                f"Completion timed out after {self.timeout_seconds}s", provider
            ) from None
        except CompletionError:
            raise
        except Exception as e:
            logger.error(f"Completion call to {provider} failed: {e}")
            raise CompletionError(f"Completion failed: {e}", provider) from e
