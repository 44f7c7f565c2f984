"""Abstract base class for quota counter storage.

The abstraction hides where counters live. Implementations must make
decrement_if_positive a single atomic compare-and-decrement: under any
number of concurrent callers, a counter at N admits exactly N decrements.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import QuotaCounter, QuotaKind


class QuotaStore(ABC):
    """Per-user chat and search counters."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend gracefully."""

    @abstractmethod
    async def get_counter(self, user_id: str) -> QuotaCounter | None:
        """Counters of a user, or None if the user was never granted any."""

    @abstractmethod
    async def decrement_if_positive(self, user_id: str, kind: QuotaKind) -> bool:
        """Atomically decrement a counter that is above zero.

        Returns:
            True if a unit was consumed, False if none remained
        """

    @abstractmethod
    async def increment(self, user_id: str, kind: QuotaKind, amount: int = 1) -> None:
        """Return units to a counter (used for refunds)."""

    @abstractmethod
    async def grant(self, user_id: str, chat: int, search: int) -> QuotaCounter:
        """Set both counters of a user, creating the user if needed."""

    @abstractmethod
    async def ensure(self, user_id: str, chat: int, search: int) -> QuotaCounter:
        """Seed counters for a user that has none; existing counters are kept."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def remaining(self, user_id: str, kind: QuotaKind) -> int:
        """Remaining units; unknown users have none."""
        counter = await self.get_counter(user_id)
        return 0 if counter is None else counter.remaining(kind)

    async def __aenter__(self) -> "QuotaStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
