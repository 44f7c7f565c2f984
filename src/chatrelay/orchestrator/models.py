from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..chat.models import Attachment
from ..errors import PersistenceError
from ..memory.models import SearchHit


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TurnState(str, Enum):
    """Lifecycle of one user turn."""

    BUILDING_REQUEST = "building_request"
    AWAITING_MODEL = "awaiting_model"
    HANDLING_TOOL_CALLS = "handling_tool_calls"
    STREAMING_FRAGMENTS = "streaming_fragments"
    DONE = "done"
    FAILED = "failed"


class ChatTurnRequest(BaseModel):
    """One user turn as submitted by a caller."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    user_id: str
    text: str
    attachments: list[Attachment] = Field(default_factory=list)
    want_stream: bool = False


class ChatReply(BaseModel):
    """Result of a completed turn."""

    id: str
    session_id: str
    text: str
    token_cost: int = 0
    created_at: datetime = Field(default_factory=_utcnow)


class SearchResponse(BaseModel):
    """Result of a search request."""

    id: str
    query: str
    results: list[SearchHit] = Field(default_factory=list)
    token_cost: int = 0
    created_at: datetime = Field(default_factory=_utcnow)


@dataclass(frozen=True)
class TurnOutcome:
    """Terminal signal of a streamed turn.

    Exactly one of `reply` and `error` is set. `persistence_error` is set
    when the turn failed and saving the partial exchange failed too.
    """

    reply: ChatReply | None = None
    error: Exception | None = None
    persistence_error: PersistenceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
