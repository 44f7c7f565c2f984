import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..llm.models import FunctionDefinition, ToolDefinition


class ToolDeclaration(BaseModel):
    """A tool as advertised to the model.

    Attributes:
        name: Unique tool name
        description: What the tool does, for the model
        parameters: JSON schema of the arguments object
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_wire(self) -> ToolDefinition:
        return ToolDefinition(function=FunctionDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        ))


class ToolCall(BaseModel):
    """A parsed tool invocation.

    Attributes:
        id_: Identifier assigned by the model
        tool_name: Name of the tool to call
        arguments: Decoded arguments object
    """

    id_: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolCallResult(BaseModel):
    """Outcome of one tool call.

    Attributes:
        tool_call_id: ID of the tool call that was executed
        tool_name: Name of the tool
        content: Tool output, or the rendered error
        error: Whether an error occurred
    """

    tool_call_id: str
    tool_name: str
    content: str
    error: bool = False
