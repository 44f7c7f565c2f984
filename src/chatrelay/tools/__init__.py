from collections.abc import Callable
from datetime import datetime

from .base import BaseTool
from .builtin import WebSearchTool, default_tools
from .models import ToolCall, ToolCallResult, ToolDeclaration
from .registry import ToolRegistry, render_results

# Tool subsets advertised per request context
CHAT_TOOL_NAMES: tuple[str, ...] = ("web_search", "calculate", "get_current_time")
SEARCH_TOOL_NAMES: tuple[str, ...] = ("web_search",)


def create_default_registry(
    timeout: float = 30.0,
    clock: Callable[[], datetime] | None = None
) -> ToolRegistry:
    """Registry holding every built-in tool.

    Args:
        timeout: Per-call execution budget in seconds
        clock: Time source for the time-dependent stand-ins

    Returns:
        Populated ToolRegistry
    """
    return ToolRegistry(default_tools(clock=clock), timeout=timeout)


def create_search_registry(
    timeout: float = 30.0,
    clock: Callable[[], datetime] | None = None
) -> ToolRegistry:
    """Registry for search requests: web_search returning ten results by default."""
    return ToolRegistry([WebSearchTool(default_results=10, clock=clock)], timeout=timeout)


__all__ = [
    "BaseTool",
    "CHAT_TOOL_NAMES",
    "SEARCH_TOOL_NAMES",
    "ToolCall",
    "ToolCallResult",
    "ToolDeclaration",
    "ToolRegistry",
    "create_default_registry",
    "create_search_registry",
    "default_tools",
    "render_results",
]
