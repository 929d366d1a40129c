"""SQLite-based store for conversation log, profile and memories."""

import sqlite3
import logging
from pathlib import Path
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from .models import ConversationLogRow, ProfileFact, MemoryRecord

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Optional[str]) -> datetime:
    return datetime.fromisoformat(value) if value else datetime.now()


class SQLiteMemoryStore:
    """SQLite-based persistent memory store."""

    def __init__(self, db_path: str = "data/assistant.db"):
        """
        Initialize SQLite memory store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS conversation_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id TEXT NOT NULL,
                    role TEXT NOT NULL CHECK(role IN ('user', 'assistant', 'summary')),
                    content TEXT NOT NULL,
                    covers_through INTEGER,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS profile (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS memories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    content TEXT NOT NULL,
                    category TEXT DEFAULT 'general',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_log_conversation ON conversation_log(conversation_id, id)"
            )

            conn.commit()
        finally:
            conn.close()
        logger.info(f"Database initialized at {self.db_path}")

    # Conversation log

    @staticmethod
    def _insert_row(
        conn: sqlite3.Connection,
        conversation_id: str,
        role: str,
        content: str,
        covers_through: Optional[int] = None
    ) -> ConversationLogRow:
        now = datetime.now()
        cursor = conn.execute(
            """
            INSERT INTO conversation_log (conversation_id, role, content, covers_through, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (conversation_id, role, content, covers_through, now.isoformat())
        )
        return ConversationLogRow(
            id=cursor.lastrowid,
            conversation_id=conversation_id,
            role=role,
            content=content,
            covers_through=covers_through,
            created_at=now
        )

    def append_entry(
        self,
        conversation_id: str,
        role: str,
        content: str,
        covers_through: Optional[int] = None
    ) -> ConversationLogRow:
        """
        Insert one conversation log row.

        Args:
            conversation_id: Conversation ID
            role: Role (user, assistant, summary)
            content: Message content
            covers_through: For summary rows, the last row ID the summary replaces

        Returns:
            Created ConversationLogRow
        """
        conn = self._get_connection()
        try:
            with conn:
                return self._insert_row(conn, conversation_id, role, content, covers_through)
        finally:
            conn.close()

    def append_entries(
        self,
        conversation_id: str,
        entries: Iterable[Tuple[str, str]]
    ) -> List[ConversationLogRow]:
        """Insert several (role, content) rows in one transaction."""
        conn = self._get_connection()
        try:
            with conn:
                return [
                    self._insert_row(conn, conversation_id, role, content)
                    for role, content in entries
                ]
        finally:
            conn.close()

    def get_recent_entries(self, conversation_id: str, limit: int = 50) -> List[ConversationLogRow]:
        """
        Get the most recent log rows of a conversation.

        Args:
            conversation_id: Conversation ID
            limit: Maximum number of rows to return

        Returns:
            Rows in chronological order (oldest first)
        """
        conn = self._get_connection()
        try:
            rows = conn.execute(
                """
                SELECT id, conversation_id, role, content, covers_through, created_at
                FROM conversation_log
                WHERE conversation_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (conversation_id, limit)
            ).fetchall()
        finally:
            conn.close()

        return [
            ConversationLogRow(
                id=row["id"],
                conversation_id=row["conversation_id"],
                role=row["role"],
                content=row["content"],
                covers_through=row["covers_through"],
                created_at=_parse_timestamp(row["created_at"])
            )
            for row in reversed(rows)  # Reverse to get chronological order
        ]

    # Profile

    def get_profile(self) -> List[ProfileFact]:
        """Get all profile facts ordered by key."""
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT key, value, updated_at FROM profile ORDER BY key"
            ).fetchall()
        finally:
            conn.close()

        return [
            ProfileFact(key=row["key"], value=row["value"], updated_at=_parse_timestamp(row["updated_at"]))
            for row in rows
        ]

    def get_profile_fact(self, key: str) -> Optional[ProfileFact]:
        """Get one profile fact, or None."""
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT key, value, updated_at FROM profile WHERE key = ?",
                (key,)
            ).fetchone()
        finally:
            conn.close()

        if not row:
            return None
        return ProfileFact(key=row["key"], value=row["value"], updated_at=_parse_timestamp(row["updated_at"]))

    def set_profile_fact(self, key: str, value: str) -> ProfileFact:
        """Insert or update a profile fact."""
        now = datetime.now()
        conn = self._get_connection()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO profile (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, value, now.isoformat())
                )
        finally:
            conn.close()
        return ProfileFact(key=key, value=value, updated_at=now)

    # Memories

    def add_memory(self, content: str, category: str = "general") -> MemoryRecord:
        """Save a memory fact."""
        now = datetime.now()
        conn = self._get_connection()
        try:
            with conn:
                cursor = conn.execute(
                    "INSERT INTO memories (content, category, created_at) VALUES (?, ?, ?)",
                    (content, category, now.isoformat())
                )
        finally:
            conn.close()
        return MemoryRecord(id=cursor.lastrowid, content=content, category=category, created_at=now)

    def _query_memories(self, where: str, params: tuple, limit: int) -> List[MemoryRecord]:
        conn = self._get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT id, content, category, created_at FROM memories
                {where}
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                params + (limit,)
            ).fetchall()
        finally:
            conn.close()

        return [
            MemoryRecord(
                id=row["id"],
                content=row["content"],
                category=row["category"] or "general",
                created_at=_parse_timestamp(row["created_at"])
            )
            for row in rows
        ]

    def search_memories(
        self,
        query: str,
        category: Optional[str] = None,
        limit: int = 10
    ) -> List[MemoryRecord]:
        """Case-insensitive substring search over memory content."""
        where = "WHERE content LIKE ?"
        params: tuple = (f"%{query}%",)
        if category:
            where += " AND category = ?"
            params += (category,)
        return self._query_memories(where, params, limit)

    def list_memories(self, category: Optional[str] = None, limit: int = 20) -> List[MemoryRecord]:
        """List recent memories, optionally filtered by category."""
        if category:
            return self._query_memories("WHERE category = ?", (category,), limit)
        return self._query_memories("", (), limit)

    def get_recent_memories(self, limit: int = 10) -> List[MemoryRecord]:
        """Most recent memories, newest first."""
        return self.list_memories(limit=limit)

    def delete_memory(self, memory_id: int) -> bool:
        """Delete a memory by ID. Returns False if nothing was deleted."""
        conn = self._get_connection()
        try:
            with conn:
                cursor = conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
        finally:
            conn.close()
        return cursor.rowcount > 0
