"""Application configuration."""

from .settings import Settings, parse_user_ids

__all__ = ["Settings", "parse_user_ids"]
