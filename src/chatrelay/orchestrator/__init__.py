"""Conversation orchestration: chat turns, streamed replies and searches."""

from .accumulator import ToolCallAccumulator
from .models import ChatReply, ChatTurnRequest, SearchResponse, TurnOutcome, TurnState
from .service import ChatService
from .stream import TurnStream

__all__ = [
    "ChatService",
    "ChatReply",
    "ChatTurnRequest",
    "SearchResponse",
    "ToolCallAccumulator",
    "TurnOutcome",
    "TurnState",
    "TurnStream",
]
