"""Web search through the Tavily API."""

import json
import asyncio
import logging
from typing import Optional

import requests

from ..base import Tool
from ..schema import ObjectParam, StringParam, NumberParam, EnumParam, BooleanParam

logger = logging.getLogger(__name__)


class WebSearchTool(Tool):
    """Search the internet for current information."""

    name = "web_search"
    description = """Search the internet for current information.
Use this for recent news, trending topics, fact-checking, finding articles, or any question
that needs up-to-date information. Returns relevant web results with titles, URLs, and snippets."""

    parameters = ObjectParam(
        properties={
            "query": StringParam(
                description="Search query. Be specific for better results."
            ),
            "max_results": NumberParam(
                integer=True, minimum=1, maximum=10, default=5,
                description="Number of results to return (default: 5, max: 10)."
            ),
            "search_depth": EnumParam(
                values=["basic", "advanced"], default="basic",
                description="'basic' for fast results, 'advanced' for deeper search."
            ),
            "include_answer": BooleanParam(
                default=True,
                description="Include a short generated answer summarizing the results."
            ),
        },
        required=["query"]
    )

    API_URL = "https://api.tavily.com/search"

    def __init__(self, api_key: Optional[str] = None, timeout: int = 20):
        """
        Initialize web search tool.

        Args:
            api_key: Tavily API key; the tool reports itself unconfigured without it
            timeout: HTTP request timeout in seconds
        """
        self.api_key = api_key
        self.timeout = timeout
        if not api_key:
            logger.info("Web search disabled: set TAVILY_API_KEY to enable")

    def _search(self, payload: dict) -> dict:
        response = requests.post(self.API_URL, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    async def execute(
        self,
        query: str,
        max_results: int = 5,
        search_depth: str = "basic",
        include_answer: bool = True
    ) -> str:
        if not self.api_key:
            return json.dumps({
                "error": "Web search is not configured. Set TAVILY_API_KEY environment variable.",
            })

        payload = {
            "api_key": self.api_key,
            "query": query,
            "max_results": max_results,
            "search_depth": search_depth,
            "include_answer": include_answer,
        }

        try:
            data = await asyncio.to_thread(self._search, payload)
        except requests.RequestException as e:
            logger.error(f"Web search failed: {e}")
            return json.dumps({"error": f"Search failed: {e}"})

        results = [
            {
                "title": r.get("title", ""),
                "url": r.get("url", ""),
                "content": (r.get("content") or "")[:500],
            }
            for r in data.get("results", [])
        ]

        return json.dumps({
            "query": query,
            "answer": data.get("answer"),
            "results": results,
            "count": len(results),
        })
