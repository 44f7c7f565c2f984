"""Tool infrastructure."""

from abc import ABC, abstractmethod
from typing import Any

from ..errors import ToolError
from .models import ToolDeclaration


class BaseTool(ABC):
    """Abstract base class for tools.

    Tools receive an already-decoded arguments object and return the
    text the user will see. Failures are raised as ToolError; the
    registry turns them into reply text.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Get the tool description for the LLM."""
        pass

    @property
    @abstractmethod
    def parameters_schema(self) -> dict[str, Any]:
        """Get the JSON schema for tool parameters."""
        pass

    @abstractmethod
    async def run(self, arguments: dict[str, Any]) -> str:
        """Execute the tool.

        Args:
            arguments: Decoded arguments object

        Returns:
            Tool output text

        Raises:
            ToolError: If the arguments are invalid or execution fails
        """
        pass

    @property
    def required_arguments(self) -> list[str]:
        return list(self.parameters_schema.get("required", []))

    def declaration(self) -> ToolDeclaration:
        """Convert tool to the declaration advertised to the model."""
        return ToolDeclaration(
            name=self.name,
            description=self.description,
            parameters=self.parameters_schema,
        )


def require_str(arguments: dict[str, Any], key: str) -> str:
    """Return a required string argument.

    Raises:
        ToolError: If the argument is absent or not a string
    """
    value = arguments.get(key)
    if not isinstance(value, str):
        raise ToolError.missing_argument(key)
    return value


def optional_str(arguments: dict[str, Any], key: str, default: str) -> str:
    value = arguments.get(key)
    return value if isinstance(value, str) else default


def optional_int(arguments: dict[str, Any], key: str, default: int) -> int:
    value = arguments.get(key)
    # bool is an int subclass; JSON numbers may arrive as floats
    if isinstance(value, bool) or not isinstance(value, int | float):
        return default
    return int(value)
