import asyncio
import json
import logging
from collections.abc import Iterable, Sequence
from typing import Any

from ..errors import ToolError, ToolErrorKind
from ..llm.models import WireToolCall
from .base import BaseTool
from .models import ToolCall, ToolCallResult, ToolDeclaration

logger = logging.getLogger(__name__)

RESULT_SEPARATOR = "\n\n"


class ToolRegistry:
    """Name-keyed set of tools with bounded execution.

    Tool calls are executed sequentially in the order the model emitted
    them. Every failure is local to its call: it is rendered as text and
    never aborts the turn.
    """

    def __init__(self, tools: Iterable[BaseTool] = (), timeout: float = 30.0):
        """Initialize the registry.

        Args:
            tools: Tools to register
            timeout: Per-call execution budget in seconds
        """
        self._tools: dict[str, BaseTool] = {}
        self._timeout = timeout
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool) -> "ToolRegistry":
        """Add a tool.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool
        return self

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def declarations(self, names: Sequence[str] | None = None) -> list[ToolDeclaration]:
        """Declarations for all tools, or for the named subset in the given order.

        Raises:
            ValueError: If a requested name is not registered
        """
        if names is None:
            return [tool.declaration() for tool in self._tools.values()]
        unknown = [n for n in names if n not in self._tools]
        if unknown:
            raise ValueError(f"Unknown tools requested: {', '.join(unknown)}")
        return [self._tools[n].declaration() for n in names]

    @staticmethod
    def parse_call(call: WireToolCall) -> ToolCall:
        """Decode a wire tool call's JSON arguments.

        Raises:
            ToolError: If the arguments are not a JSON object
        """
        raw = call.function.arguments or "{}"
        try:
            arguments: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ToolError(ToolErrorKind.INVALID_ARGUMENTS, f"failed to parse tool arguments: {e}") from e
        if not isinstance(arguments, dict):
            raise ToolError(ToolErrorKind.INVALID_ARGUMENTS, "tool arguments must be a JSON object")
        return ToolCall(id_=call.id, tool_name=call.function.name, arguments=arguments)

    async def execute(self, call: ToolCall) -> str:
        """Run one tool call.

        Raises:
            ToolError: Unknown tool, missing argument, timeout or tool failure
        """
        tool = self._tools.get(call.tool_name)
        if tool is None:
            raise ToolError.unknown_tool(call.tool_name)

        for key in tool.required_arguments:
            if key not in call.arguments:
                raise ToolError.missing_argument(key)

        try:
            return await asyncio.wait_for(tool.run(call.arguments), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ToolError(ToolErrorKind.TIMEOUT, f"{call.tool_name} exceeded {self._timeout:g}s") from e
        except ToolError:
            raise
        except Exception as e:
            raise ToolError(ToolErrorKind.EXECUTION_FAILED, str(e)) from e

    async def execute_wire(self, call: WireToolCall) -> ToolCallResult:
        """Parse and run a wire tool call, rendering any failure as text."""
        name = call.function.name
        try:
            parsed = self.parse_call(call)
            content = await self.execute(parsed)
        except ToolError as e:
            logger.info("Tool %s failed: %s", name, e)
            return ToolCallResult(
                tool_call_id=call.id,
                tool_name=name,
                content=f"Error executing {name}: {e}",
                error=True,
            )
        return ToolCallResult(tool_call_id=call.id, tool_name=name, content=content)

    async def run_all(self, calls: Sequence[WireToolCall]) -> list[ToolCallResult]:
        """Execute calls sequentially, in emission order."""
        results = []
        for call in calls:
            results.append(await self.execute_wire(call))
        return results


def render_results(results: Sequence[ToolCallResult]) -> str:
    """Join tool outputs into reply text."""
    return RESULT_SEPARATOR.join(r.content for r in results)
