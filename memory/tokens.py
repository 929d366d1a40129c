"""Token counting for context accounting."""

import logging
from typing import Optional

import tiktoken

logger = logging.getLogger(__name__)


class TokenCounter:
    """Counts tokens with a tiktoken encoding, loaded on first use."""

    def __init__(self, model: str = "gpt-4"):
        self.model = model
        self._encoding: Optional[tiktoken.Encoding] = None

    @property
    def encoding(self) -> tiktoken.Encoding:
        if self._encoding is None:
            self._encoding = tiktoken.encoding_for_model(self.model)
            logger.debug(f"Loaded tiktoken encoding {self._encoding.name} for {self.model}")
        return self._encoding

    def __call__(self, text: str) -> int:
        return len(self.encoding.encode(text, disallowed_special=()))
