"""Tool contract and execution result."""

import json
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from errors import ToolValidationError
from .schema import ObjectParam

logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    """Result from tool execution: either output text or an error."""
    tool_name: str
    success: bool
    output: str = ""
    error: Optional[str] = None
    details: Optional[List[Dict[str, Any]]] = None

    @classmethod
    def ok(cls, tool_name: str, output: str) -> "ToolResult":
        return cls(tool_name=tool_name, success=True, output=output)

    @classmethod
    def fail(
        cls,
        tool_name: str,
        error: str,
        details: Optional[List[Dict[str, Any]]] = None
    ) -> "ToolResult":
        return cls(tool_name=tool_name, success=False, error=error, details=details)

    def to_content(self) -> str:
        """Text handed back to the model."""
        if self.success:
            return self.output
        payload: Dict[str, Any] = {"error": self.error}
        if self.details:
            payload["details"] = self.details
        return json.dumps(payload)


class Tool(ABC):
    """Abstract base class for tools."""
    name: str
    description: str
    parameters: ObjectParam = ObjectParam()

    @abstractmethod
    async def execute(self, **kwargs) -> str:
        """Execute the tool with validated arguments and return text."""
        pass

    def get_definition(self) -> Dict:
        """Get OpenAI-compatible tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters.json_schema()
            }
        }

    async def invoke(self, arguments: Any, timeout: Optional[float] = None) -> ToolResult:
        """
        Validate arguments and run the tool.

        Never raises for tool-level failures: validation errors, timeouts
        and exceptions from the tool body come back as failed results.
        """
        try:
            validated = self.parameters.validate_arguments(self.name, arguments)
        except ToolValidationError as e:
            logger.info(f"Rejected arguments for {self.name}: {e.problems}")
            return ToolResult.fail(self.name, str(e), details=e.problems)

        try:
            output = await asyncio.wait_for(self.execute(**validated), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Tool {self.name} timed out after {timeout}s")
            return ToolResult.fail(self.name, f"Tool execution timed out after {timeout}s")
        except Exception as e:
            logger.error(f"Tool {self.name} failed: {e}")
            return ToolResult.fail(self.name, f"Tool execution failed: {e}")

        if not isinstance(output, str):
            output = json.dumps(output, default=str)
        return ToolResult.ok(self.name, output)
