"""Wire models for the OpenAI-compatible chat completions protocol.

These mirror the JSON the gateway sends and receives. Unknown fields in
responses are ignored so that provider extensions do not break parsing.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TextPart(BaseModel):
    """Plain text segment of a multimodal message."""

    type: Literal["text"] = "text"
    text: str


class ImageURL(BaseModel):
    """Image reference; inline images use a base64 data URL."""

    url: str
    detail: str | None = "auto"


class ImagePart(BaseModel):
    """Image segment of a multimodal message."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


class FileData(BaseModel):
    """Inline file payload (base64 encoded)."""

    data: str
    media_type: str
    filename: str


class FilePart(BaseModel):
    """File segment of a multimodal message."""

    type: Literal["file"] = "file"
    file: FileData


ContentPart = Annotated[TextPart | ImagePart | FilePart, Field(discriminator="type")]


class FunctionCall(BaseModel):
    """Function name and JSON-encoded arguments emitted by the model."""

    name: str = ""
    arguments: str = ""


class WireToolCall(BaseModel):
    """Tool invocation as it appears in a completion."""

    id: str = ""
    type: str = "function"
    function: FunctionCall = Field(default_factory=FunctionCall)


class ChatMessage(BaseModel):
    """A single message in the request or response."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'system', 'user' or 'assistant'")
    content: str | list[ContentPart] | None = Field(
        default=None,
        description="Plain text, or an ordered list of multimodal parts"
    )
    tool_calls: list[WireToolCall] | None = None


class FunctionDefinition(BaseModel):
    """Function signature advertised to the model."""

    name: str
    description: str
    parameters: dict[str, Any]


class ToolDefinition(BaseModel):
    """Tool entry of the request's `tools` array."""

    type: Literal["function"] = "function"
    function: FunctionDefinition


class ChatRequest(BaseModel):
    """Chat completion request body."""

    model: str
    messages: list[ChatMessage]
    stream: bool = False
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop: list[str] | None = None
    tools: list[ToolDefinition] | None = None
    tool_choice: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON body, omitting unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class Usage(BaseModel):
    """Token usage reported by the gateway."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class FunctionCallDelta(BaseModel):
    """Partial function call inside a stream delta."""

    name: str | None = None
    arguments: str | None = None


class ToolCallDelta(BaseModel):
    """Partial tool call inside a stream delta, keyed by index."""

    index: int = 0
    id: str | None = None
    type: str | None = None
    function: FunctionCallDelta | None = None


class MessageDelta(BaseModel):
    """Incremental message content in a stream chunk."""

    role: str | None = None
    content: str | None = None
    tool_calls: list[ToolCallDelta] | None = None


class Choice(BaseModel):
    """One completion choice.

    Some gateways put tool calls on the choice itself rather than on the
    message; both placements are accepted.
    """

    index: int = 0
    message: ChatMessage | None = None
    delta: MessageDelta | None = None
    finish_reason: str | None = None
    tool_calls: list[WireToolCall] | None = None

    def all_tool_calls(self) -> list[WireToolCall]:
        """Tool calls from the choice, falling back to the message."""
        if self.tool_calls:
            return list(self.tool_calls)
        if self.message is not None and self.message.tool_calls:
            return list(self.message.tool_calls)
        return []

    def text(self) -> str:
        """Model-authored text of a non-streamed choice."""
        if self.message is None or not isinstance(self.message.content, str):
            return ""
        return self.message.content


class ChatCompletion(BaseModel):
    """Full (non-streamed) completion response."""

    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None


class StreamChunk(BaseModel):
    """One SSE payload of a streamed completion."""

    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None

    def delta_text(self) -> str:
        """Text carried by the first choice's delta, if any."""
        if not self.choices or self.choices[0].delta is None:
            return ""
        return self.choices[0].delta.content or ""


class ErrorDetail(BaseModel):
    """Structured error returned by the gateway."""

    message: str = ""
    type: str | None = None
    param: str | None = None
    code: str | int | None = None


class ErrorEnvelope(BaseModel):
    """`{"error": {...}}` wrapper around ErrorDetail."""

    error: ErrorDetail


class ModelInfo(BaseModel):
    """Entry of the model listing."""

    id: str
    object: str = "model"
    owned_by: str | None = None


class ModelList(BaseModel):
    """`GET /models` response."""

    data: list[ModelInfo] = Field(default_factory=list)
