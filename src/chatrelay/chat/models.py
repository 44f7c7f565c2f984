import asyncio
import mimetypes
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..errors import AttachmentReadError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Random 128-bit identifier as 32 hex characters."""
    return uuid.uuid4().hex


class Role(str, Enum):
    """Author of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class TextBlock(BaseModel):
    """Text part of a multimodal message."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


class InlineImage(BaseModel):
    """Image bytes carried inside a message."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    data: bytes = Field(repr=False)
    media_type: str


class InlineFile(BaseModel):
    """Non-image file bytes carried inside a message."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"
    data: bytes = Field(repr=False)
    media_type: str
    filename: str


Part = Annotated[TextBlock | InlineImage | InlineFile, Field(discriminator="kind")]


class TextContent(BaseModel):
    """Plain text message content."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


class MultimodalContent(BaseModel):
    """Ordered parts; a leading text part is present when the user typed text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["multimodal"] = "multimodal"
    parts: list[Part] = Field(min_length=1)


TurnContent = Annotated[TextContent | MultimodalContent, Field(discriminator="kind")]


class Turn(BaseModel):
    """A persisted conversation message."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    session_id: str
    role: Role
    content: TurnContent
    token_cost: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)


class Attachment(BaseModel):
    """A file the user attached to a chat turn.

    Bytes come either from `data` or, lazily, from `path`.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    media_type: str = "application/octet-stream"
    data: bytes | None = Field(default=None, repr=False)
    path: Path | None = None

    @classmethod
    def from_path(cls, path: str | Path, media_type: str | None = None) -> "Attachment":
        """Attachment backed by a file; media type guessed from the extension."""
        path = Path(path)
        if media_type is None:
            media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(filename=path.name, media_type=media_type, path=path)

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")

    async def read(self) -> bytes:
        """Return the attachment bytes.

        Raises:
            AttachmentReadError: If the backing file cannot be read
        """
        if self.data is not None:
            return self.data
        if self.path is None:
            raise AttachmentReadError(self.filename, "no data or path")
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise AttachmentReadError(self.filename, str(e)) from e
