"""Conversation context manager for LLM context window management."""

import asyncio
import logging
from typing import Callable, List, Optional

from errors import CompactionError, CompletionError
from llm.base_client import Message
from llm.prompts import SUMMARIZE_PRUNE_INSTRUCTION, SUMMARIZE_COMPACT_INSTRUCTION
from .models import ConversationEntry, ConversationLogRow

logger = logging.getLogger(__name__)

NOT_ENOUGH_HISTORY = "Not enough conversation history to compact."


class ConversationContextManager:
    """
    Owns the in-memory history of one conversation.

    History is loaded from the store on creation, appended to in memory as
    turns happen, and compacted by replacing a prefix with an LLM summary
    once token usage crosses the prune threshold.
    """

    # Configuration
    HISTORY_LOAD_LIMIT = 50
    MAX_CONTEXT_TOKENS = 150_000
    PRUNE_THRESHOLD = 0.8
    MESSAGE_OVERHEAD_TOKENS = 4  # Approximate per-message framing cost
    SUMMARY_TARGET_TOKENS = 500
    COMPACT_KEEP_COUNT = 4
    MIN_SUMMARIZED_ENTRIES = 2

    def __init__(
        self,
        conversation_id: str,
        store,
        completion_client,
        token_counter: Optional[Callable[[str], int]] = None,
        max_context_tokens: int = MAX_CONTEXT_TOKENS,
        prune_threshold: float = PRUNE_THRESHOLD,
        message_overhead: int = MESSAGE_OVERHEAD_TOKENS,
        summary_target_tokens: int = SUMMARY_TARGET_TOKENS,
        compact_keep_count: int = COMPACT_KEEP_COUNT
    ):
        """
        Initialize context manager with empty history.

        Use `create()` to also load history from the store.

        Args:
            conversation_id: Conversation this history belongs to
            store: Store with `get_recent_entries` and `append_entry`
            completion_client: Client used to generate summaries
            token_counter: Callable returning the token count of a string
            max_context_tokens: Context window of the completion model
            prune_threshold: Fraction of the window that triggers pruning
            message_overhead: Tokens added per entry for protocol framing
            summary_target_tokens: Length target given to the summarizer
            compact_keep_count: Entries kept verbatim by `compact()`
        """
        if token_counter is None:
            from .tokens import TokenCounter
            token_counter = TokenCounter()

        self.conversation_id = conversation_id
        self.store = store
        self.completion_client = completion_client
        self.count_tokens = token_counter
        self.max_context_tokens = max_context_tokens
        self.prune_threshold = prune_threshold
        self.message_overhead = message_overhead
        self.summary_target_tokens = summary_target_tokens
        self.compact_keep_count = compact_keep_count
        self._history: List[ConversationEntry] = []

    @classmethod
    async def create(
        cls,
        conversation_id: str,
        store,
        completion_client,
        history_limit: int = HISTORY_LOAD_LIMIT,
        **kwargs
    ) -> "ConversationContextManager":
        """Create a context manager and seed it from durable storage."""
        manager = cls(conversation_id, store, completion_client, **kwargs)
        await manager.load_history(history_limit)
        return manager

    async def load_history(self, limit: int = HISTORY_LOAD_LIMIT):
        """
        Replace in-memory history with the most recent stored rows.

        A storage failure leaves history empty; the conversation continues
        without prior context.
        """
        try:
            rows = await asyncio.to_thread(self.store.get_recent_entries, self.conversation_id, limit)
        except Exception as e:
            logger.warning(f"Failed to load conversation history for {self.conversation_id}: {e}")
            self._history = []
            return

        self._history = [row.to_entry() for row in self.resume_from_summary(rows)]
        logger.info(f"Loaded {len(self._history)} history entries for {self.conversation_id}")

    @staticmethod
    def resume_from_summary(rows: List[ConversationLogRow]) -> List[ConversationLogRow]:
        """
        Rebuild the post-compaction view of a log window.

        The newest summary row goes first, followed by the rows it did not
        cover. Older summaries and the rows they replaced are skipped.
        """
        summaries = [row for row in rows if row.role == "summary"]
        if not summaries:
            return list(rows)

        latest = summaries[-1]
        covered = latest.covers_through if latest.covers_through is not None else latest.id
        tail = [row for row in rows if row.role != "summary" and row.id > covered]
        return [latest] + tail

    @property
    def history(self) -> List[ConversationEntry]:
        """Snapshot of the in-memory history."""
        return list(self._history)

    def __len__(self) -> int:
        return len(self._history)

    def add_message(self, role: str, content: str) -> ConversationEntry:
        """Append a turn to in-memory history. Does not persist."""
        entry = ConversationEntry(role=role, content=content)
        self._history.append(entry)
        return entry

    def discard(self, entry: ConversationEntry) -> bool:
        """Remove an entry that was added but never persisted."""
        for index in range(len(self._history) - 1, -1, -1):
            if self._history[index] is entry:
                del self._history[index]
                return True
        return False

    async def persist_entry(self, entry: ConversationEntry):
        """Write one turn to durable storage."""
        row = await asyncio.to_thread(
            self.store.append_entry, self.conversation_id, entry.role, entry.content
        )
        entry.row_id = row.id

    async def persist_exchange(self, user_entry: ConversationEntry, assistant_entry: ConversationEntry):
        """Write a completed user/assistant pair to durable storage in one batch."""
        rows = await asyncio.to_thread(
            self.store.append_entries,
            self.conversation_id,
            [("user", user_entry.content), ("assistant", assistant_entry.content)]
        )
        user_entry.row_id, assistant_entry.row_id = rows[0].id, rows[1].id

    def get_messages(self) -> List[Message]:
        """Project history into completion messages."""
        return [Message(role=entry.role, content=entry.content) for entry in self._history]

    def entry_tokens(self, entry: ConversationEntry) -> int:
        return self.count_tokens(entry.content) + self.message_overhead

    def get_total_tokens(self) -> int:
        """Total tokens of history including per-message overhead."""
        return sum(self.entry_tokens(entry) for entry in self._history)

    def needs_pruning(self) -> bool:
        """True when history exceeds the prune threshold."""
        return self.get_total_tokens() > self.max_context_tokens * self.prune_threshold

    async def prune(self) -> Optional[str]:
        """
        Summarize the older half of history if over the token threshold.

        Returns:
            The summary text, or None if nothing was pruned

        Raises:
            CompactionError: If summarization or the summary write fails
        """
        if not self.needs_pruning():
            return None

        midpoint = len(self._history) // 2
        if midpoint < self.MIN_SUMMARIZED_ENTRIES:
            return None

        to_summarize = self._history[:midpoint]
        instruction = SUMMARIZE_PRUNE_INSTRUCTION.format(target_tokens=self.summary_target_tokens)
        summary_text = await self._summarize_and_replace(to_summarize, instruction)

        old_tokens = sum(self.count_tokens(entry.content) for entry in to_summarize)
        new_tokens = self.count_tokens(summary_text)
        logger.info(
            f"Context pruned for {self.conversation_id}: {old_tokens} -> {new_tokens} tokens "
            f"({midpoint} messages summarized)"
        )
        return summary_text

    async def compact(self) -> str:
        """
        Summarize everything except the most recent entries, regardless of size.

        Returns:
            Human-readable status with before/after message and token counts

        Raises:
            CompactionError: If summarization or the summary write fails
        """
        original_count = len(self._history)
        original_tokens = self.get_total_tokens()

        to_summarize = self._history[:max(original_count - self.compact_keep_count, 0)]
        if original_count < 4 or not to_summarize:
            return NOT_ENOUGH_HISTORY

        await self._summarize_and_replace(to_summarize, SUMMARIZE_COMPACT_INSTRUCTION)

        new_tokens = self.get_total_tokens()
        logger.info(f"Context compacted for {self.conversation_id}: {original_tokens} -> {new_tokens} tokens")
        return (
            f"Compacted: {original_count} messages ({original_tokens} tokens) → "
            f"{len(self._history)} messages ({new_tokens} tokens)"
        )

    @staticmethod
    def format_transcript(entries: List[ConversationEntry]) -> str:
        """Render entries as `role: content` paragraphs."""
        return "\n\n".join(f"{entry.role}: {entry.content}" for entry in entries)

    async def _summarize_and_replace(
        self,
        to_summarize: List[ConversationEntry],
        instruction: str
    ) -> str:
        """
        Summarize a history prefix and swap it for one summary entry.

        The summary row is written before in-memory history changes, so a
        failure at any step leaves both untouched.
        """
        prompt = f"{instruction}\n\n{self.format_transcript(to_summarize)}"

        try:
            response = await self.completion_client.complete(
                [Message(role="user", content=prompt)], []
            )
        except CompletionError as e:
            raise CompactionError(f"Summarization failed: {e}") from e

        summary_text = (response.content or "").strip()
        if not summary_text:
            raise CompactionError("Summarization returned no text")

        stored_ids = [entry.row_id for entry in to_summarize if entry.row_id is not None]
        covers_through = stored_ids[-1] if stored_ids else None

        try:
            row = await asyncio.to_thread(
                self.store.append_entry, self.conversation_id, "summary", summary_text, covers_through
            )
        except Exception as e:
            raise CompactionError(f"Failed to store summary: {e}") from e

        # Turns appended while the summary was generated stay in the kept tail
        kept = self._history[len(to_summarize):]

        summary_entry = ConversationEntry.summary(summary_text)
        summary_entry.row_id = row.id
        self._history = [summary_entry] + kept
        return summary_text
