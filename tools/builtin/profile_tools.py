"""User profile tools."""

import json
import asyncio

from ..base import Tool
from ..schema import ObjectParam, StringParam


class SetProfileTool(Tool):
    name = "set_profile"
    description = """Set or update a user profile fact.
Use this when you learn key information about the user: name, role, company, interests,
expertise, communication style, etc. Common keys: name, role, company, industry, interests,
expertise, tone, writing_style, location."""

    parameters = ObjectParam(
        properties={
            "key": StringParam(description='Profile fact key (e.g. "name", "role", "interests").'),
            "value": StringParam(description="The value for this profile fact."),
        },
        required=["key", "value"]
    )

    def __init__(self, store):
        self.store = store

    async def execute(self, key: str, value: str) -> str:
        key = key.lower().strip()
        if not key:
            return json.dumps({"error": "Profile key must not be empty."})

        await asyncio.to_thread(self.store.set_profile_fact, key, value)
        return json.dumps({"success": True, "message": f'Profile updated: {key} = "{value}"'})


class GetProfileTool(Tool):
    name = "get_profile"
    description = """Get user profile facts.
Call this at the start of important tasks to understand the user's context."""

    parameters = ObjectParam(
        properties={
            "key": StringParam(description="Optional specific key to retrieve. Omit to get all profile facts."),
        }
    )

    def __init__(self, store):
        self.store = store

    async def execute(self, key: str = None) -> str:
        if key:
            fact = await asyncio.to_thread(self.store.get_profile_fact, key.lower().strip())
            if fact is None:
                return json.dumps({"error": f'No profile fact found for "{key}".'})
            return json.dumps({"profile": {"key": fact.key, "value": fact.value}})

        facts = await asyncio.to_thread(self.store.get_profile)
        if not facts:
            return json.dumps({
                "profile": {},
                "message": "No profile information saved yet. Ask the user about themselves to build their profile.",
            })
        return json.dumps({"profile": {fact.key: fact.value for fact in facts}})
