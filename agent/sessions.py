"""Per-conversation agent sessions with a retention policy."""

import time
import asyncio
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from memory.context_manager import ConversationContextManager
from .loop import AgentLoop

logger = logging.getLogger(__name__)


@dataclass
class AgentSession:
    """Context manager and agent loop bound to one conversation."""
    conversation_id: str
    context: ConversationContextManager
    agent: AgentLoop
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    last_used: float = field(default_factory=time.monotonic)
    active: int = 0  # Callers currently holding this session

    @property
    def busy(self) -> bool:
        return self.active > 0 or self.lock.locked()


SessionFactory = Callable[[str], Awaitable[AgentSession]]


class SessionManager:
    """
    Keeps one session per conversation ID.

    Sessions are created on first use and evicted when idle for longer than
    `idle_seconds` or when more than `max_sessions` are open (least recently
    used first). Evicted conversations reload from storage on their next
    message.
    """

    def __init__(
        self,
        factory: SessionFactory,
        max_sessions: int = 32,
        idle_seconds: Optional[float] = 3600.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.factory = factory
        self.max_sessions = max_sessions
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._sessions: "OrderedDict[str, AgentSession]" = OrderedDict()
        self._creating: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._sessions

    async def get(self, conversation_id: str) -> AgentSession:
        """Return the session for a conversation, creating it if needed."""
        return await self._open(conversation_id)

    @asynccontextmanager
    async def checkout(self, conversation_id: str) -> AsyncIterator[AgentSession]:
        """
        Hold a session for the duration of the block.

        A checked-out session is never evicted, even while its caller is
        still waiting for the session lock.
        """
        session = await self._open(conversation_id, hold=True)
        try:
            yield session
        finally:
            session.active -= 1
            session.last_used = self.clock()

    async def _open(self, conversation_id: str, hold: bool = False) -> AgentSession:
        self.evict_idle()

        session = self._sessions.get(conversation_id)
        if session is None:
            lock = self._creating.setdefault(conversation_id, asyncio.Lock())
            async with lock:
                session = self._sessions.get(conversation_id)
                if session is None:
                    session = await self.factory(conversation_id)
                    self._sessions[conversation_id] = session
                    logger.info(f"Opened session for conversation {conversation_id}")
            self._creating.pop(conversation_id, None)

        self._sessions.move_to_end(conversation_id)
        session.last_used = self.clock()
        if hold:
            session.active += 1
        self._evict_overflow(keep=conversation_id)
        return session

    async def run(self, conversation_id: str, user_message: str):
        """Run one agent turn; turns of the same conversation never overlap."""
        async with self.checkout(conversation_id) as session:
            async with session.lock:
                return await session.agent.run_turn(user_message)

    async def compact(self, conversation_id: str) -> str:
        """Explicitly compact one conversation's history."""
        async with self.checkout(conversation_id) as session:
            async with session.lock:
                return await session.context.compact()

    def evict_idle(self) -> int:
        """Drop sessions idle longer than the retention window."""
        if self.idle_seconds is None:
            return 0

        now = self.clock()
        expired = [
            cid for cid, session in self._sessions.items()
            if now - session.last_used > self.idle_seconds and not session.busy
        ]
        for cid in expired:
            del self._sessions[cid]
            logger.info(f"Evicted idle session {cid}")
        return len(expired)

    def _evict_overflow(self, keep: str):
        overflow = len(self._sessions) - self.max_sessions
        if overflow <= 0:
            return

        # Oldest first; held sessions and the one being opened stay
        candidates = [
            cid for cid, session in self._sessions.items()
            if cid != keep and not session.busy
        ]
        for cid in candidates[:overflow]:
            del self._sessions[cid]
            logger.info(f"Evicted least recently used session {cid}")
