from enum import Enum

from pydantic import BaseModel, Field


class QuotaKind(str, Enum):
    """Independently metered operations."""

    CHAT = "chat"
    SEARCH = "search"


class QuotaCounter(BaseModel):
    """Remaining uses of one user. Never negative."""

    user_id: str
    chat_remaining: int = Field(default=0, ge=0)
    search_remaining: int = Field(default=0, ge=0)

    def remaining(self, kind: QuotaKind) -> int:
        return self.chat_remaining if kind is QuotaKind.CHAT else self.search_remaining
