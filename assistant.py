"""Main assistant: wires settings, storage, LLM, tools and sessions together."""

import logging
from typing import List, Optional

from config.settings import Settings
from errors import AgentError, CompactionError

# LLM components
from llm.factory import create_llm_client
from llm.base_client import BaseLLMClient
from llm.completion import CompletionClient

# Memory components
from memory.sqlite_store import SQLiteMemoryStore
from memory.context_manager import ConversationContextManager

# Tools
from tools.registry import ToolRegistry
from tools.builtin import register_builtin_tools

# Agent
from agent.loop import AgentLoop
from agent.sessions import AgentSession, SessionManager

logger = logging.getLogger(__name__)

GENERIC_APOLOGY = "Sorry, something went wrong processing your message. Please try again."
COMPACT_FAILED = "Sorry, I couldn't compact the conversation right now. Your history is unchanged."


def split_message(text: str, max_length: int) -> List[str]:
    """
    Split a reply into chunks no longer than `max_length`.

    Prefers splitting at a newline, then at a space, as long as the split
    point is in the second half of the chunk; otherwise splits hard.
    """
    chunks = []
    remaining = text

    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        split_index = remaining.rfind("\n", 0, max_length)
        if split_index == -1 or split_index < max_length * 0.5:
            split_index = remaining.rfind(" ", 0, max_length)
        if split_index == -1 or split_index < max_length * 0.5:
            split_index = max_length

        chunks.append(remaining[:split_index])
        remaining = remaining[split_index:].lstrip()

    return chunks


class Assistant:
    """Personal assistant composed of the agent core and its collaborators."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[BaseLLMClient] = None,
        store=None,
        registry: Optional[ToolRegistry] = None,
        token_counter=None
    ):
        """
        Initialize assistant.

        Args:
            settings: Application settings
            llm_client: Provider client (built from settings if omitted)
            store: Persistence store (SQLite at settings.db_path if omitted)
            registry: Tool registry (built-in tools are registered if omitted)
            token_counter: Optional tokenizer override for context accounting
        """
        self.settings = settings or Settings()
        self.token_counter = token_counter

        self.store = store if store is not None else SQLiteMemoryStore(db_path=self.settings.db_path)
        logger.info(f"Memory initialized: {self.settings.db_path}")

        self.llm_client = llm_client or create_llm_client(
            provider=self.settings.llm_provider,
            api_key=self.settings.get_llm_api_key(),
            model=self.settings.llm_model
        )
        self.completion_client = CompletionClient(
            llm_client=self.llm_client,
            store=self.store,
            memory_limit=self.settings.memory_context_limit,
            timeout_seconds=self.settings.completion_timeout_seconds,
            max_tokens=self.settings.max_tokens
        )
        logger.info(
            f"LLM client initialized: {self.llm_client.get_provider_name()} "
            f"({self.llm_client.get_model_name()})"
        )

        if registry is None:
            registry = ToolRegistry()
            count = register_builtin_tools(registry, self.store, self.settings)
            logger.info(f"Registered {count} built-in tools")
        registry.freeze()
        self.registry = registry

        self.sessions = SessionManager(
            factory=self._create_session,
            max_sessions=self.settings.max_sessions,
            idle_seconds=self.settings.session_idle_seconds
        )

    async def _create_session(self, conversation_id: str) -> AgentSession:
        kwargs = {}
        if self.token_counter is not None:
            kwargs["token_counter"] = self.token_counter

        context = await ConversationContextManager.create(
            conversation_id,
            self.store,
            self.completion_client,
            history_limit=self.settings.history_load_limit,
            max_context_tokens=self.settings.max_context_tokens,
            prune_threshold=self.settings.prune_threshold,
            message_overhead=self.settings.message_token_overhead,
            summary_target_tokens=self.settings.summary_target_tokens,
            compact_keep_count=self.settings.compact_keep_count,
            **kwargs
        )
        agent = AgentLoop(
            completion_client=self.completion_client,
            registry=self.registry,
            context=context,
            max_iterations=self.settings.max_agent_iterations,
            tool_timeout=self.settings.tool_timeout_seconds
        )
        return AgentSession(conversation_id=conversation_id, context=context, agent=agent)

    def is_allowed(self, user_id: int) -> bool:
        return user_id in self.settings.allowed_user_ids

    async def handle_message(self, user_id: int, text: str) -> List[str]:
        """
        Process one inbound message from a user.

        Args:
            user_id: Sender identity, checked against the allow-list
            text: Message text

        Returns:
            Reply chunks to send; empty for senders not on the allow-list
        """
        if not self.is_allowed(user_id):
            return []

        logger.info(f"Message from {user_id}: {text[:80]}")
        try:
            result = await self.sessions.run(str(user_id), text)
        except AgentError as e:
            logger.error(f"Agent error for {user_id}: {e}")
            return [GENERIC_APOLOGY]
        except Exception:
            logger.exception(f"Unexpected error handling message from {user_id}")
            return [GENERIC_APOLOGY]

        if result.exhausted:
            logger.warning(f"Returned loop-exhaustion fallback to {user_id}")

        chunks = split_message(result.reply, self.settings.max_reply_chars)
        logger.info(f"Response sent ({len(result.reply)} chars, {len(chunks)} chunk(s))")
        return chunks

    async def compact(self, user_id: int) -> Optional[str]:
        """Handle the /compact command. Returns None for unknown senders."""
        if not self.is_allowed(user_id):
            return None

        try:
            status = await self.sessions.compact(str(user_id))
        except CompactionError as e:
            logger.error(f"Compaction failed for {user_id}: {e}")
            return COMPACT_FAILED
        except Exception:
            logger.exception(f"Unexpected error compacting conversation of {user_id}")
            return COMPACT_FAILED
        return f"🗜️ {status}"
