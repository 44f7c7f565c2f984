"""In-memory history backend.

Non-persistent storage for tests and one-off CLI runs.
"""

import asyncio
from datetime import datetime, timezone

from ..chat.models import Turn
from .base import HistoryStore
from .models import ChatSession, SearchRecord


class InMemoryHistoryStore(HistoryStore):
    """In-memory conversation history.

    Turns are kept per session in insertion order. Data is lost when the
    process exits.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ChatSession] = {}
        self._turns: dict[str, list[Turn]] = {}
        self._searches: list[SearchRecord] = []
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """No-op for in-memory backend."""

    async def disconnect(self) -> None:
        """No-op for in-memory backend."""

    async def create_session(
        self,
        user_id: str,
        title: str = "New Chat",
        session_id: str | None = None
    ) -> ChatSession:
        async with self._lock:
            if session_id is not None and session_id in self._sessions:
                raise ValueError(f"Session already exists: {session_id}")
            session = ChatSession(user_id=user_id, title=title)
            if session_id is not None:
                session = session.model_copy(update={"id": session_id})
            self._sessions[session.id] = session
            self._turns[session.id] = []
            return session

    async def get_session(self, session_id: str) -> ChatSession | None:
        return self._sessions.get(session_id)

    async def list_sessions(self, user_id: str, limit: int = 50, offset: int = 0) -> list[ChatSession]:
        owned = [s for s in self._sessions.values() if s.user_id == user_id]
        owned.sort(key=lambda s: s.updated_at, reverse=True)
        return owned[offset:offset + limit]

    async def delete_session(self, session_id: str, user_id: str) -> bool:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.user_id != user_id:
                return False
            del self._sessions[session_id]
            self._turns.pop(session_id, None)
            return True

    async def _insert_turns(self, turns: list[Turn]) -> None:
        async with self._lock:
            for turn in turns:
                if turn.session_id not in self._sessions:
                    raise KeyError(f"Unknown session: {turn.session_id}")
            for turn in turns:
                self._turns[turn.session_id].append(turn)
                session = self._sessions[turn.session_id]
                self._sessions[turn.session_id] = session.model_copy(
                    update={"updated_at": datetime.now(timezone.utc)}
                )

    async def replay_history(self, session_id: str, limit: int) -> list[Turn]:
        if limit <= 0:
            return []
        return list(self._turns.get(session_id, [])[-limit:])

    async def list_turns(self, session_id: str, limit: int = 50, offset: int = 0) -> list[Turn]:
        return list(self._turns.get(session_id, [])[offset:offset + limit])

    async def record_search(self, record: SearchRecord) -> str:
        self._searches.append(record)
        return record.id

    async def list_searches(self, user_id: str, limit: int = 20) -> list[SearchRecord]:
        mine = [r for r in self._searches if r.user_id == user_id]
        return list(reversed(mine))[:limit]

    @property
    def backend_type(self) -> str:
        return "memory"
