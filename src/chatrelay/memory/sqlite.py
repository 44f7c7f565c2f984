"""SQLite history backend.

Provides persistent conversation storage using a SQLite database.
Uses aiosqlite for async access.
"""

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from ..chat.content import decode_content, encode_content
from ..chat.models import Role, Turn
from .base import HistoryStore
from .models import ChatSession, SearchHit, SearchRecord

logger = logging.getLogger(__name__)


class SQLiteHistoryStore(HistoryStore):
    """SQLite-backed conversation history.

    Turn order is the table's autoincrement sequence, so turns created
    within the same timestamp still replay in insertion order. Writes are
    serialized on one connection so multi-row inserts commit atomically.
    """

    def __init__(self, path: str | Path = "./chatrelay.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @property
    def _db(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SQLiteHistoryStore is not connected")
        return self._connection

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._connection is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._create_schema()
        logger.debug("History store opened at %s", self._db_path)

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS turns (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                session_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                token_cost INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE
            )
        """)

        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_turns_session
            ON turns(session_id, seq)
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS searches (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                query TEXT NOT NULL,
                results TEXT NOT NULL DEFAULT '[]',
                token_cost INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
        """)

        await self._db.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def create_session(
        self,
        user_id: str,
        title: str = "New Chat",
        session_id: str | None = None
    ) -> ChatSession:
        session = ChatSession(user_id=user_id, title=title)
        if session_id is not None:
            session = session.model_copy(update={"id": session_id})

        async with self._write_lock:
            try:
                await self._db.execute(
                    """
                    INSERT INTO sessions (id, user_id, title, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (session.id, session.user_id, session.title,
                     session.created_at.isoformat(), session.updated_at.isoformat())
                )
                await self._db.commit()
            except sqlite3.IntegrityError as e:
                await self._db.rollback()
                raise ValueError(f"Session already exists: {session.id}") from e
        return session

    async def get_session(self, session_id: str) -> ChatSession | None:
        async with self._db.execute(
            "SELECT id, user_id, title, created_at, updated_at FROM sessions WHERE id = ?",
            (session_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return None if row is None else _session_from_row(row)

    async def list_sessions(self, user_id: str, limit: int = 50, offset: int = 0) -> list[ChatSession]:
        async with self._db.execute(
            """
            SELECT id, user_id, title, created_at, updated_at
            FROM sessions
            WHERE user_id = ?
            ORDER BY updated_at DESC
            LIMIT ? OFFSET ?
            """,
            (user_id, limit, offset)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_session_from_row(row) for row in rows]

    async def delete_session(self, session_id: str, user_id: str) -> bool:
        async with self._write_lock:
            cursor = await self._db.execute(
                "DELETE FROM sessions WHERE id = ? AND user_id = ?",
                (session_id, user_id)
            )
            await self._db.commit()
            return cursor.rowcount > 0

    async def _insert_turns(self, turns: list[Turn]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        async with self._write_lock:
            try:
                for turn in turns:
                    await self._db.execute(
                        """
                        INSERT INTO turns (id, session_id, role, content, token_cost, created_at)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (turn.id, turn.session_id, turn.role.value, encode_content(turn.content),
                         turn.token_cost, turn.created_at.isoformat())
                    )
                    await self._db.execute(
                        "UPDATE sessions SET updated_at = ? WHERE id = ?",
                        (now, turn.session_id)
                    )
                await self._db.commit()
            except BaseException:
                # Cancellation between the inserts must not leave half a pair
                # pending for the next commit on this connection
                await asyncio.shield(self._db.rollback())
                raise

    async def replay_history(self, session_id: str, limit: int) -> list[Turn]:
        if limit <= 0:
            return []
        async with self._db.execute(
            """
            SELECT id, session_id, role, content, token_cost, created_at
            FROM turns
            WHERE session_id = ?
            ORDER BY seq DESC
            LIMIT ?
            """,
            (session_id, limit)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_turn_from_row(row) for row in reversed(rows)]

    async def list_turns(self, session_id: str, limit: int = 50, offset: int = 0) -> list[Turn]:
        async with self._db.execute(
            """
            SELECT id, session_id, role, content, token_cost, created_at
            FROM turns
            WHERE session_id = ?
            ORDER BY seq ASC
            LIMIT ? OFFSET ?
            """,
            (session_id, limit, offset)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_turn_from_row(row) for row in rows]

    async def record_search(self, record: SearchRecord) -> str:
        results = json.dumps([hit.model_dump() for hit in record.results], ensure_ascii=False)
        async with self._write_lock:
            await self._db.execute(
                """
                INSERT INTO searches (id, user_id, query, results, token_cost, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (record.id, record.user_id, record.query, results,
                 record.token_cost, record.created_at.isoformat())
            )
            await self._db.commit()
        return record.id

    async def list_searches(self, user_id: str, limit: int = 20) -> list[SearchRecord]:
        async with self._db.execute(
            """
            SELECT id, user_id, query, results, token_cost, created_at
            FROM searches
            WHERE user_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (user_id, limit)
        ) as cursor:
            rows = await cursor.fetchall()

        records = []
        for record_id, uid, query, results_json, token_cost, created_at in rows:
            records.append(SearchRecord(
                id=record_id,
                user_id=uid,
                query=query,
                results=[SearchHit(**hit) for hit in json.loads(results_json)],
                token_cost=token_cost,
                created_at=datetime.fromisoformat(created_at),
            ))
        return records

    @property
    def backend_type(self) -> str:
        return "sqlite"


def _session_from_row(row: tuple) -> ChatSession:
    session_id, user_id, title, created_at, updated_at = row
    return ChatSession(
        id=session_id,
        user_id=user_id,
        title=title,
        created_at=datetime.fromisoformat(created_at),
        updated_at=datetime.fromisoformat(updated_at),
    )


def _turn_from_row(row: tuple) -> Turn:
    turn_id, session_id, role, content, token_cost, created_at = row
    return Turn(
        id=turn_id,
        session_id=session_id,
        role=Role(role),
        content=decode_content(content),
        token_cost=token_cost,
        created_at=datetime.fromisoformat(created_at),
    )
