"""Built-in tools."""

from .time_tool import GetCurrentTimeTool
from .memory_tools import RememberTool, SearchMemoryTool, ListMemoriesTool, ForgetTool
from .profile_tools import SetProfileTool, GetProfileTool
from .web_search import WebSearchTool


def register_builtin_tools(registry, store, settings) -> int:
    """Register every built-in tool. Returns the number registered."""
    tools = [
        GetCurrentTimeTool(),
        RememberTool(store),
        SearchMemoryTool(store),
        ListMemoriesTool(store),
        ForgetTool(store),
        SetProfileTool(store),
        GetProfileTool(store),
        WebSearchTool(api_key=settings.tavily_api_key),
    ]
    for tool in tools:
        registry.register(tool)
    return len(tools)


__all__ = [
    "GetCurrentTimeTool",
    "RememberTool",
    "SearchMemoryTool",
    "ListMemoriesTool",
    "ForgetTool",
    "SetProfileTool",
    "GetProfileTool",
    "WebSearchTool",
    "register_builtin_tools",
]
