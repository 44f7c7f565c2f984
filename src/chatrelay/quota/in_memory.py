"""In-memory quota backend."""

import asyncio

from .base import QuotaStore
from .models import QuotaCounter, QuotaKind


class InMemoryQuotaStore(QuotaStore):
    """Counters held in a dict, guarded by a single lock."""

    def __init__(self) -> None:
        self._counters: dict[str, QuotaCounter] = {}
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """No-op for in-memory backend."""

    async def disconnect(self) -> None:
        """No-op for in-memory backend."""

    async def get_counter(self, user_id: str) -> QuotaCounter | None:
        counter = self._counters.get(user_id)
        return None if counter is None else counter.model_copy()

    async def decrement_if_positive(self, user_id: str, kind: QuotaKind) -> bool:
        async with self._lock:
            counter = self._counters.get(user_id)
            if counter is None or counter.remaining(kind) <= 0:
                return False
            self._counters[user_id] = _adjusted(counter, kind, -1)
            return True

    async def increment(self, user_id: str, kind: QuotaKind, amount: int = 1) -> None:
        async with self._lock:
            counter = self._counters.get(user_id) or QuotaCounter(user_id=user_id)
            self._counters[user_id] = _adjusted(counter, kind, amount)

    async def grant(self, user_id: str, chat: int, search: int) -> QuotaCounter:
        async with self._lock:
            counter = QuotaCounter(user_id=user_id, chat_remaining=chat, search_remaining=search)
            self._counters[user_id] = counter
            return counter.model_copy()

    async def ensure(self, user_id: str, chat: int, search: int) -> QuotaCounter:
        async with self._lock:
            if user_id not in self._counters:
                self._counters[user_id] = QuotaCounter(
                    user_id=user_id, chat_remaining=chat, search_remaining=search
                )
            return self._counters[user_id].model_copy()

    @property
    def backend_type(self) -> str:
        return "memory"


def _adjusted(counter: QuotaCounter, kind: QuotaKind, delta: int) -> QuotaCounter:
    field = "chat_remaining" if kind is QuotaKind.CHAT else "search_remaining"
    return counter.model_copy(update={field: getattr(counter, field) + delta})
