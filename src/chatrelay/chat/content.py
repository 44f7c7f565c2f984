"""Consumers of TurnContent.

Each function matches exhaustively on the content and part variants.
"""

import base64
import json
from typing import Any

from .models import InlineFile, InlineImage, MultimodalContent, TextBlock, TextContent, TurnContent


def content_text(content: TurnContent) -> str:
    """Text-only view of content, used when replaying history."""
    match content:
        case TextContent(text=text):
            return text
        case MultimodalContent(parts=parts):
            return "\n".join(p.text for p in parts if isinstance(p, TextBlock))
    raise TypeError(f"unexpected content: {type(content).__name__}")


def render_content(content: TurnContent) -> str:
    """Human-readable rendering with placeholders for binary parts."""
    match content:
        case TextContent(text=text):
            return text
        case MultimodalContent(parts=parts):
            lines = []
            for part in parts:
                match part:
                    case TextBlock(text=text):
                        lines.append(text)
                    case InlineImage(media_type=media_type, data=data):
                        lines.append(f"[image: {media_type}, {len(data)} bytes]")
                    case InlineFile(filename=filename, media_type=media_type, data=data):
                        lines.append(f"[file: {filename} ({media_type}), {len(data)} bytes]")
            return "\n".join(lines)
    raise TypeError(f"unexpected content: {type(content).__name__}")


def encode_content(content: TurnContent) -> str:
    """Serialize content to JSON for storage; bytes are base64 encoded."""
    return json.dumps(_content_to_dict(content), ensure_ascii=False)


def decode_content(raw: str) -> TurnContent:
    """Inverse of encode_content."""
    data = json.loads(raw)
    match data:
        case {"kind": "text", "text": str(text)}:
            return TextContent(text=text)
        case {"kind": "multimodal", "parts": list(parts)}:
            return MultimodalContent(parts=[_part_from_dict(p) for p in parts])
    raise ValueError(f"unrecognized stored content: {raw[:80]!r}")


def _content_to_dict(content: TurnContent) -> dict[str, Any]:
    match content:
        case TextContent(text=text):
            return {"kind": "text", "text": text}
        case MultimodalContent(parts=parts):
            return {"kind": "multimodal", "parts": [_part_to_dict(p) for p in parts]}
    raise TypeError(f"unexpected content: {type(content).__name__}")


def _part_to_dict(part: TextBlock | InlineImage | InlineFile) -> dict[str, Any]:
    match part:
        case TextBlock(text=text):
            return {"kind": "text", "text": text}
        case InlineImage(data=data, media_type=media_type):
            return {
                "kind": "image",
                "media_type": media_type,
                "data": base64.b64encode(data).decode("ascii"),
            }
        case InlineFile(data=data, media_type=media_type, filename=filename):
            return {
                "kind": "file",
                "media_type": media_type,
                "filename": filename,
                "data": base64.b64encode(data).decode("ascii"),
            }
    raise TypeError(f"unexpected part: {type(part).__name__}")


def _part_from_dict(data: dict[str, Any]) -> TextBlock | InlineImage | InlineFile:
    match data:
        case {"kind": "text", "text": str(text)}:
            return TextBlock(text=text)
        case {"kind": "image", "media_type": str(media_type), "data": str(b64)}:
            return InlineImage(data=base64.b64decode(b64), media_type=media_type)
        case {"kind": "file", "media_type": str(media_type), "filename": str(filename), "data": str(b64)}:
            return InlineFile(data=base64.b64decode(b64), media_type=media_type, filename=filename)
    raise ValueError(f"unrecognized stored part: {data.get('kind')!r}")
