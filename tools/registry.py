"""Process-wide tool catalog."""

import logging
from typing import Dict, List, Optional

from errors import DuplicateToolError, RegistryFrozenError
from .base import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Maps unique tool names to tools.

    Tools are registered once at startup; `freeze()` then makes the catalog
    read-only so it can be shared without locking.
    """

    def __init__(self):
        self._tools: Dict[str, Tool] = {}
        self._frozen = False

    def register(self, tool: Tool) -> Tool:
        """
        Add a tool to the catalog.

        Raises:
            DuplicateToolError: If a tool with the same name exists
            RegistryFrozenError: If the registry was already frozen
        """
        if self._frozen:
            raise RegistryFrozenError(f'Cannot register "{tool.name}": registry is frozen.')
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")
        return tool

    def lookup(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def list_all(self) -> List[Tool]:
        """All tools in registration order."""
        return list(self._tools.values())

    def get_definitions(self) -> List[Dict]:
        """Tool declarations sent with every completion request."""
        return [tool.get_definition() for tool in self.list_all()]

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
