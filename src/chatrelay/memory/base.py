"""Abstract base class for conversation history backends.

This module defines the interface for conversation history storage.
The abstraction hides:
- Storage format (in-process lists, SQLite rows)
- Persistence mechanism (file, database, in-memory)
- Connection management

Turns of a session form a total order by creation; replay returns the
most recent turns, oldest first.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..chat.models import Role, Turn
from ..errors import SessionAccessDenied
from .models import ChatSession, SearchRecord


class HistoryStore(ABC):
    """Abstract conversation history backend."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend gracefully."""

    @abstractmethod
    async def create_session(
        self,
        user_id: str,
        title: str = "New Chat",
        session_id: str | None = None
    ) -> ChatSession:
        """Create a session, optionally with a caller-chosen id.

        Raises:
            ValueError: If a session with that id already exists
        """

    @abstractmethod
    async def get_session(self, session_id: str) -> ChatSession | None:
        """Look up a session by id."""

    @abstractmethod
    async def list_sessions(self, user_id: str, limit: int = 50, offset: int = 0) -> list[ChatSession]:
        """Sessions of a user, most recently updated first."""

    @abstractmethod
    async def delete_session(self, session_id: str, user_id: str) -> bool:
        """Delete a session and its turns; False if not found for this user."""

    @abstractmethod
    async def _insert_turns(self, turns: list[Turn]) -> None:
        """Persist turns atomically, in order."""

    @abstractmethod
    async def replay_history(self, session_id: str, limit: int) -> list[Turn]:
        """The `limit` most recent turns, oldest first."""

    @abstractmethod
    async def list_turns(self, session_id: str, limit: int = 50, offset: int = 0) -> list[Turn]:
        """A page of turns in creation order."""

    @abstractmethod
    async def record_search(self, record: SearchRecord) -> str:
        """Persist a search record and return its id."""

    @abstractmethod
    async def list_searches(self, user_id: str, limit: int = 20) -> list[SearchRecord]:
        """Recent searches of a user, newest first."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def append_turn(self, turn: Turn) -> str:
        """Persist one turn and return its id.

        Raises:
            ValueError: For system turns, which are never stored
        """
        _check_storable(turn)
        await self._insert_turns([turn])
        return turn.id

    async def append_exchange(self, user_turn: Turn, assistant_turn: Turn) -> tuple[str, str]:
        """Persist a user turn and its reply together, user turn first."""
        _check_storable(user_turn)
        _check_storable(assistant_turn)
        await self._insert_turns([user_turn, assistant_turn])
        return user_turn.id, assistant_turn.id

    async def ensure_session(self, session_id: str, user_id: str) -> ChatSession:
        """Return the user's session, creating it on first use.

        Raises:
            SessionAccessDenied: If the session belongs to another user
        """
        session = await self.get_session(session_id)
        if session is None:
            try:
                return await self.create_session(user_id, session_id=session_id)
            except ValueError:
                # Created concurrently by another turn
                session = await self.get_session(session_id)
                if session is None:
                    raise
        if session.user_id != user_id:
            raise SessionAccessDenied(session_id)
        return session

    async def __aenter__(self) -> "HistoryStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()


def _check_storable(turn: Turn) -> None:
    if turn.role is Role.SYSTEM:
        raise ValueError("system turns are not persisted")
