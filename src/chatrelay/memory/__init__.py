"""Conversation history storage.

Stores sessions, their turns and search records. The chat orchestrator
only ever talks to the HistoryStore interface.
"""

from .base import HistoryStore
from .factory import create_history_store
from .in_memory import InMemoryHistoryStore
from .models import ChatSession, SearchHit, SearchRecord
from .sqlite import SQLiteHistoryStore

__all__ = [
    "HistoryStore",
    "create_history_store",
    "InMemoryHistoryStore",
    "SQLiteHistoryStore",
    "ChatSession",
    "SearchHit",
    "SearchRecord",
]
