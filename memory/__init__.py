"""Memory system for conversation persistence."""

from .models import ConversationEntry, ConversationLogRow, ProfileFact, MemoryRecord, SUMMARY_PREFIX
from .sqlite_store import SQLiteMemoryStore
from .context_manager import ConversationContextManager, NOT_ENOUGH_HISTORY

__all__ = [
    "ConversationEntry",
    "ConversationLogRow",
    "ProfileFact",
    "MemoryRecord",
    "SUMMARY_PREFIX",
    "SQLiteMemoryStore",
    "ConversationContextManager",
    "NOT_ENOUGH_HISTORY",
]
