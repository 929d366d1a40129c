"""Agent orchestration: tool-use loop and per-conversation sessions."""

from .transcript import Transcript
from .loop import AgentLoop, AgentResult, FALLBACK_REPLY
from .sessions import AgentSession, SessionManager

__all__ = [
    "Transcript",
    "AgentLoop",
    "AgentResult",
    "FALLBACK_REPLY",
    "AgentSession",
    "SessionManager",
]
