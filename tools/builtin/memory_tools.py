"""Long-term memory tools backed by the memory store."""

import json
import asyncio
import logging

from ..base import Tool
from ..schema import ObjectParam, StringParam, NumberParam, EnumParam

logger = logging.getLogger(__name__)

MEMORY_CATEGORIES = ["professional", "personal", "preference", "style", "general"]


def _memory_to_dict(memory) -> dict:
    return {
        "id": memory.id,
        "content": memory.content,
        "category": memory.category,
        "created_at": memory.created_at.isoformat(),
    }


class RememberTool(Tool):
    """Save a fact to long-term memory."""

    name = "remember"
    description = """Save an important fact, preference, or observation to long-term memory.
Call this proactively whenever you learn something important about the user: their interests,
preferences, projects, opinions, or any fact worth remembering later.
Categories: professional, personal, preference, style, general."""

    parameters = ObjectParam(
        properties={
            "content": StringParam(description="The fact or observation to remember."),
            "category": EnumParam(
                values=MEMORY_CATEGORIES,
                description="Category for organizing the memory.",
                default="general"
            ),
        },
        required=["content"]
    )

    def __init__(self, store):
        self.store = store

    async def execute(self, content: str, category: str = "general") -> str:
        try:
            memory = await asyncio.to_thread(self.store.add_memory, content, category)
        except Exception as e:
            logger.error(f"Failed to save memory: {e}")
            return json.dumps({"error": f"Failed to save memory: {e}"})

        return json.dumps({
            "success": True,
            "id": memory.id,
            "message": f'Remembered: "{content}" [{category}]',
        })


class SearchMemoryTool(Tool):
    """Text search over saved memories."""

    name = "search_memory"
    description = """Search through saved memories using text search.
Use this to recall facts about the user, their preferences, past conversations, or any stored information."""

    parameters = ObjectParam(
        properties={
            "query": StringParam(description="Search query."),
            "category": StringParam(description="Optional category filter."),
            "limit": NumberParam(
                integer=True, minimum=1, maximum=50, default=10,
                description="Max results to return (default: 10)."
            ),
        },
        required=["query"]
    )

    def __init__(self, store):
        self.store = store

    async def execute(self, query: str, category: str = None, limit: int = 10) -> str:
        try:
            results = await asyncio.to_thread(self.store.search_memories, query, category, limit)
        except Exception as e:
            logger.error(f"Memory search failed: {e}")
            return json.dumps({"error": f"Search failed: {e}"})

        return json.dumps({
            "query": query,
            "results": [_memory_to_dict(m) for m in results],
            "count": len(results),
        })


class ListMemoriesTool(Tool):
    """List recent memories."""

    name = "list_memories"
    description = """List recent memories, optionally filtered by category.
Use when the user asks what you know or remember."""

    parameters = ObjectParam(
        properties={
            "category": StringParam(description="Optional category filter."),
            "limit": NumberParam(
                integer=True, minimum=1, maximum=100, default=20,
                description="Max results (default: 20)."
            ),
        }
    )

    def __init__(self, store):
        self.store = store

    async def execute(self, category: str = None, limit: int = 20) -> str:
        memories = await asyncio.to_thread(self.store.list_memories, category, limit)
        return json.dumps({
            "memories": [_memory_to_dict(m) for m in memories],
            "count": len(memories),
        })


class ForgetTool(Tool):
    """Delete a memory by ID."""

    name = "forget"
    description = """Delete a specific memory by ID.
Use when the user asks to forget something or when information is outdated."""

    parameters = ObjectParam(
        properties={
            "id": NumberParam(integer=True, description="The memory ID to delete."),
        },
        required=["id"]
    )

    def __init__(self, store):
        self.store = store

    async def execute(self, id: int) -> str:
        deleted = await asyncio.to_thread(self.store.delete_memory, id)
        if not deleted:
            return json.dumps({"error": f"No memory found with ID {id}."})
        return json.dumps({"success": True, "message": f"Memory #{id} forgotten."})
