"""SQLite quota backend.

Uses aiosqlite. The conditional UPDATE is the atomic compare-and-decrement;
its rowcount tells whether a unit was consumed.
"""

import asyncio
import logging
from pathlib import Path

import aiosqlite

from .base import QuotaStore
from .models import QuotaCounter, QuotaKind

logger = logging.getLogger(__name__)

_COLUMNS = {QuotaKind.CHAT: "chat_remaining", QuotaKind.SEARCH: "search_remaining"}


class SQLiteQuotaStore(QuotaStore):
    """SQLite-backed quota counters.

    May share a database file with SQLiteHistoryStore.
    """

    def __init__(self, path: str | Path = "./chatrelay.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @property
    def _db(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SQLiteQuotaStore is not connected")
        return self._connection

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._connection is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS quotas (
                user_id TEXT PRIMARY KEY,
                chat_remaining INTEGER NOT NULL DEFAULT 0 CHECK (chat_remaining >= 0),
                search_remaining INTEGER NOT NULL DEFAULT 0 CHECK (search_remaining >= 0)
            )
        """)
        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def get_counter(self, user_id: str) -> QuotaCounter | None:
        async with self._db.execute(
            "SELECT chat_remaining, search_remaining FROM quotas WHERE user_id = ?",
            (user_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return QuotaCounter(user_id=user_id, chat_remaining=row[0], search_remaining=row[1])

    async def decrement_if_positive(self, user_id: str, kind: QuotaKind) -> bool:
        column = _COLUMNS[kind]
        async with self._write_lock:
            cursor = await self._db.execute(
                f"UPDATE quotas SET {column} = {column} - 1 WHERE user_id = ? AND {column} > 0",
                (user_id,)
            )
            await self._db.commit()
            return cursor.rowcount > 0

    async def increment(self, user_id: str, kind: QuotaKind, amount: int = 1) -> None:
        column = _COLUMNS[kind]
        async with self._write_lock:
            await self._db.execute(
                "INSERT OR IGNORE INTO quotas (user_id) VALUES (?)",
                (user_id,)
            )
            await self._db.execute(
                f"UPDATE quotas SET {column} = {column} + ? WHERE user_id = ?",
                (amount, user_id)
            )
            await self._db.commit()

    async def grant(self, user_id: str, chat: int, search: int) -> QuotaCounter:
        counter = QuotaCounter(user_id=user_id, chat_remaining=chat, search_remaining=search)
        async with self._write_lock:
            await self._db.execute(
                """
                INSERT INTO quotas (user_id, chat_remaining, search_remaining)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    chat_remaining = excluded.chat_remaining,
                    search_remaining = excluded.search_remaining
                """,
                (user_id, chat, search)
            )
            await self._db.commit()
        logger.info("Granted %s: chat=%d search=%d", user_id, chat, search)
        return counter

    async def ensure(self, user_id: str, chat: int, search: int) -> QuotaCounter:
        async with self._write_lock:
            await self._db.execute(
                """
                INSERT OR IGNORE INTO quotas (user_id, chat_remaining, search_remaining)
                VALUES (?, ?, ?)
                """,
                (user_id, chat, search)
            )
            await self._db.commit()
        counter = await self.get_counter(user_id)
        assert counter is not None
        return counter

    @property
    def backend_type(self) -> str:
        return "sqlite"
