"""Application settings."""

import os
from typing import List, Optional
from pydantic import BaseModel

from errors import ConfigurationError


def parse_user_ids(raw: str) -> List[int]:
    """Parse a comma-separated list of numeric user IDs."""
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(int(part))
        except ValueError:
            raise ConfigurationError(
                "ALLOWED_USER_IDS must be comma-separated numbers."
            ) from None
    return ids


class Settings(BaseModel):
    """Application configuration settings."""

    # LLM Provider settings
    llm_provider: str = "anthropic"  # "anthropic" or "openai"
    llm_model: Optional[str] = None  # Override default model

    # API Keys
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    tavily_api_key: Optional[str] = None

    # Storage
    db_path: str = "data/assistant.db"

    # Access control
    allowed_user_ids: List[int] = []

    # Agent loop
    max_agent_iterations: int = 10
    tool_timeout_seconds: float = 30.0
    completion_timeout_seconds: float = 120.0
    max_tokens: int = 4096

    # Context window
    history_load_limit: int = 50
    max_context_tokens: int = 150_000
    prune_threshold: float = 0.8
    message_token_overhead: int = 4
    summary_target_tokens: int = 500
    compact_keep_count: int = 4
    memory_context_limit: int = 10

    # Sessions
    max_sessions: int = 32
    session_idle_seconds: float = 3600.0

    # Transport
    max_reply_chars: int = 4096

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load secrets and deployment values from environment if not provided
        if data.get("anthropic_api_key") is None:
            data["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

        if data.get("openai_api_key") is None:
            data["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

        if data.get("tavily_api_key") is None:
            data["tavily_api_key"] = os.environ.get("TAVILY_API_KEY")

        if "allowed_user_ids" not in data and os.environ.get("ALLOWED_USER_IDS"):
            data["allowed_user_ids"] = parse_user_ids(os.environ["ALLOWED_USER_IDS"])

        if "max_agent_iterations" not in data and os.environ.get("MAX_AGENT_ITERATIONS"):
            try:
                data["max_agent_iterations"] = int(os.environ["MAX_AGENT_ITERATIONS"])
            except ValueError:
                raise ConfigurationError("MAX_AGENT_ITERATIONS must be a number.") from None

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return None

    def validate_required(self):
        """
        Check the settings needed to serve traffic.

        Raises:
            ConfigurationError: If a required value is missing or invalid
        """
        if self.llm_provider not in ("anthropic", "openai"):
            raise ConfigurationError(f"Unsupported LLM provider: {self.llm_provider}")

        if not self.get_llm_api_key():
            raise ConfigurationError(
                f"Missing API key for {self.llm_provider}. "
                f"Set {self.llm_provider.upper()}_API_KEY."
            )

        if not self.allowed_user_ids:
            raise ConfigurationError("ALLOWED_USER_IDS must contain at least one user ID.")

        if self.max_agent_iterations < 1:
            raise ConfigurationError("max_agent_iterations must be at least 1.")

        if not 0 < self.prune_threshold <= 1:
            raise ConfigurationError("prune_threshold must be in (0, 1].")
