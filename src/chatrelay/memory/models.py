"""Data models for conversation history storage."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from ..chat.models import new_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatSession(BaseModel):
    """A conversation owned by one user."""

    id: str = Field(default_factory=new_id)
    user_id: str
    title: str = "New Chat"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class SearchHit(BaseModel):
    """One entry of a search response."""

    title: str
    content: str
    url: str | None = None
    score: float | None = None


class SearchRecord(BaseModel):
    """A completed search request, kept for auditing."""

    id: str = Field(default_factory=new_id)
    user_id: str
    query: str
    results: list[SearchHit] = Field(default_factory=list)
    token_cost: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)
