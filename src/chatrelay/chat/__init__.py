from .builder import BuiltRequest, MessageBuilder, to_wire_message
from .content import content_text, decode_content, encode_content, render_content
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
    new_id,
)

__all__ = [
    "BuiltRequest",
    "MessageBuilder",
    "to_wire_message",
    "content_text",
    "decode_content",
    "encode_content",
    "render_content",
    "Attachment",
    "InlineFile",
    "InlineImage",
    "MultimodalContent",
    "Role",
    "TextBlock",
    "TextContent",
    "Turn",
    "TurnContent",
    "new_id",
]
