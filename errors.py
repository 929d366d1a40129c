"""Exception hierarchy shared by the assistant components."""

from typing import Any, Dict, List, Optional


class AssistantError(Exception):
    """Base class for all assistant errors."""


class ConfigurationError(AssistantError):
    """Invalid or missing configuration. Fatal at startup."""


class DuplicateToolError(ConfigurationError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str):
        super().__init__(f'Tool "{name}" is already registered.')
        self.name = name


class RegistryFrozenError(ConfigurationError):
    """Tool registration attempted after startup finished."""


class AgentError(AssistantError):
    """Failure surfaced to the transport from the agent core."""


class CompletionError(AgentError):
    """The completion provider call failed or returned an unusable response."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class CompactionError(AgentError):
    """Summarizing conversation history failed. History was left untouched."""


class ToolValidationError(AssistantError):
    """Model-supplied tool arguments do not match the declared schema."""

    def __init__(self, tool_name: str, problems: List[Dict[str, Any]]):
        fields = ", ".join(p["field"] for p in problems) or "input"
        super().__init__(f"Invalid arguments for {tool_name}: {fields}")
        self.tool_name = tool_name
        self.problems = problems
