"""Memory data models."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

SUMMARY_PREFIX = "[Context Summary] "


class ConversationEntry(BaseModel):
    """A single turn in a conversation."""
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    row_id: Optional[int] = None  # Set once the entry is in the conversation log

    @property
    def is_summary(self) -> bool:
        """True for synthetic entries produced by compaction."""
        return self.role == "assistant" and self.content.startswith(SUMMARY_PREFIX)

    @classmethod
    def summary(cls, summary_text: str) -> "ConversationEntry":
        """Build the synthetic entry that replaces a summarized prefix."""
        return cls(role="assistant", content=f"{SUMMARY_PREFIX}{summary_text}")


class ConversationLogRow(BaseModel):
    """A row of the durable conversation log."""
    id: int
    conversation_id: str
    role: Literal["user", "assistant", "summary"]
    content: str
    covers_through: Optional[int] = None  # Summary rows: last row ID the summary replaces
    created_at: datetime = Field(default_factory=datetime.now)

    def to_entry(self) -> ConversationEntry:
        """Project a stored row into the in-memory history shape."""
        if self.role == "summary":
            return ConversationEntry(
                role="assistant",
                content=f"{SUMMARY_PREFIX}{self.content}",
                timestamp=self.created_at,
                row_id=self.id
            )
        return ConversationEntry(
            role=self.role, content=self.content, timestamp=self.created_at, row_id=self.id
        )


class ProfileFact(BaseModel):
    """A key/value fact about the user."""
    key: str
    value: str
    updated_at: Optional[datetime] = None


class MemoryRecord(BaseModel):
    """A long-term memory fact."""
    id: int
    content: str
    category: str = "general"
    created_at: datetime = Field(default_factory=datetime.now)
