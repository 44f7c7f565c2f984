import base64
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..llm.models import (
    ChatMessage,
    ChatRequest,
    ContentPart,
    FileData,
    FilePart,
    ImagePart,
    ImageURL,
    TextPart,
    ToolDefinition,
)
from ..prompts import get_system_prompt
from ..settings import GatewaySettings
from .content import content_text
from .models import (
    Attachment,
    InlineFile,
    InlineImage,
    MultimodalContent,
    Role,
    TextBlock,
    TextContent,
    Turn,
    TurnContent,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuiltRequest:
    """Request ready to send, plus the user content to persist."""

    request: ChatRequest
    user_content: TurnContent


def to_wire_message(role: Role, content: TurnContent) -> ChatMessage:
    """Convert internal content to a wire message."""
    match content:
        case TextContent(text=text):
            return ChatMessage(role=role.value, content=text)
        case MultimodalContent(parts=parts):
            wire_parts: list[ContentPart] = []
            for part in parts:
                match part:
                    case TextBlock(text=text):
                        wire_parts.append(TextPart(text=text))
                    case InlineImage(data=data, media_type=media_type):
                        b64 = base64.b64encode(data).decode("ascii")
                        wire_parts.append(ImagePart(
                            image_url=ImageURL(url=f"data:{media_type};base64,{b64}", detail="auto")
                        ))
                    case InlineFile(data=data, media_type=media_type, filename=filename):
                        wire_parts.append(FilePart(file=FileData(
                            data=base64.b64encode(data).decode("ascii"),
                            media_type=media_type,
                            filename=filename,
                        )))
            return ChatMessage(role=role.value, content=wire_parts)
    raise TypeError(f"unexpected content: {type(content).__name__}")


class MessageBuilder:
    """Assembles upstream requests from history and the new user input.

    The outgoing message list is always: one system message, the replayed
    history flattened to text, then the new user message.
    """

    def __init__(self, settings: GatewaySettings | None = None):
        self._settings = settings or GatewaySettings()

    @property
    def settings(self) -> GatewaySettings:
        return self._settings

    def system_message(self, prompt: str | None = None) -> ChatMessage:
        text = prompt or self._settings.system_prompt or get_system_prompt()
        return ChatMessage(role=Role.SYSTEM.value, content=text)

    def history_messages(self, history: Sequence[Turn]) -> list[ChatMessage]:
        """Replayed turns as text-only messages; attachments are not resent."""
        return [
            ChatMessage(role=turn.role.value, content=content_text(turn.content))
            for turn in history
            if turn.role is not Role.SYSTEM
        ]

    async def user_content(self, text: str, attachments: Sequence[Attachment] = ()) -> TurnContent:
        """Build the user's content, reading every attachment.

        Raises:
            AttachmentReadError: If any attachment cannot be read
        """
        if not attachments:
            return TextContent(text=text)

        parts: list[TextBlock | InlineImage | InlineFile] = [TextBlock(text=text)]
        for attachment in attachments:
            data = await attachment.read()
            if attachment.is_image:
                parts.append(InlineImage(data=data, media_type=attachment.media_type))
            else:
                parts.append(InlineFile(
                    data=data,
                    media_type=attachment.media_type,
                    filename=attachment.filename,
                ))
            logger.debug("Attached %s (%s)", attachment.filename, attachment.media_type)
        return MultimodalContent(parts=parts)

    def request(
        self,
        messages: list[ChatMessage],
        tools: Sequence[ToolDefinition] = (),
        stream: bool = False,
    ) -> ChatRequest:
        """Wrap messages with the configured model and sampling parameters."""
        s = self._settings
        return ChatRequest(
            model=s.model,
            messages=messages,
            stream=stream,
            temperature=s.temperature,
            max_tokens=s.max_tokens,
            top_p=s.top_p,
            frequency_penalty=s.frequency_penalty,
            presence_penalty=s.presence_penalty,
            stop=list(s.stop) or None,
            tools=list(tools) or None,
            tool_choice="auto" if tools else None,
        )

    async def build(
        self,
        history: Sequence[Turn],
        text: str,
        attachments: Sequence[Attachment] = (),
        tools: Sequence[ToolDefinition] = (),
        stream: bool = False,
    ) -> BuiltRequest:
        """Assemble a chat turn request.

        Raises:
            AttachmentReadError: If any attachment cannot be read; nothing
                is built in that case
        """
        user_content = await self.user_content(text, attachments)
        messages = [
            self.system_message(),
            *self.history_messages(history),
            to_wire_message(Role.USER, user_content),
        ]
        return BuiltRequest(
            request=self.request(messages, tools=tools, stream=stream),
            user_content=user_content,
        )
