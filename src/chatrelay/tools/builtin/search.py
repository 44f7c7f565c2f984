from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from ..base import BaseTool, optional_int, require_str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WebSearchTool(BaseTool):
    """Deterministic stand-in for a web search backend.

    Produces up to three canned results mentioning the query, dated
    today, yesterday and the day before.
    """

    def __init__(self, default_results: int = 5, clock: Callable[[], datetime] | None = None):
        """Initialize the search tool.

        Args:
            default_results: Result count when the model does not ask for one
            clock: Returns the current time (injectable for tests)
        """
        self._default_results = default_results
        self._clock = clock or _utcnow

    @property
    def name(self) -> str:
        return "web_search"

    @property
    def description(self) -> str:
        return "Search the web for current information and news"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query to find information about"
                },
                "num_results": {
                    "type": "integer",
                    "description": f"Number of search results to return (default: {self._default_results}, max: 10)",
                    "default": self._default_results,
                    "minimum": 1,
                    "maximum": 10
                }
            },
            "required": ["query"]
        }

    def results(self, query: str) -> list[dict[str, str]]:
        """Canned result records for a query."""
        today = self._clock()
        return [
            {
                "title": f"Search result for: {query}",
                "url": "https://example.com/result1",
                "snippet": f"This is a comprehensive result about {query} with detailed information.",
                "published": today.strftime("%Y-%m-%d"),
            },
            {
                "title": f"Latest news about {query}",
                "url": "https://news.example.com/article",
                "snippet": f"Recent developments and updates regarding {query} from reliable sources.",
                "published": (today - timedelta(days=1)).strftime("%Y-%m-%d"),
            },
            {
                "title": f"Complete guide to {query}",
                "url": "https://guide.example.com/topic",
                "snippet": f"A detailed guide covering all aspects of {query} with examples and best practices.",
                "published": (today - timedelta(days=2)).strftime("%Y-%m-%d"),
            },
        ]

    async def run(self, arguments: dict[str, Any]) -> str:
        query = require_str(arguments, "query")
        limit = optional_int(arguments, "num_results", self._default_results)

        lines = [f"Search results for '{query}':\n\n"]
        for i, result in enumerate(self.results(query)[:max(limit, 0)], start=1):
            lines.append(
                f"{i}. **{result['title']}**\n"
                f"   URL: {result['url']}\n"
                f"   {result['snippet']}\n"
                f"   Published: {result['published']}\n\n"
            )
        return "".join(lines)
