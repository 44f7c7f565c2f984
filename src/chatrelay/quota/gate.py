import logging

from ..errors import InsufficientQuota
from ..settings import QuotaPolicy
from .base import QuotaStore
from .models import QuotaKind

logger = logging.getLogger(__name__)


class QuotaGate:
    """Admission and charging of metered operations.

    With QuotaPolicy.CHARGE_AFTER a request is admitted on a read-only
    check and charged once its work has succeeded; the charge itself is
    a conditional decrement and may still fail under concurrency. With
    QuotaPolicy.RESERVE the unit is taken at admission and refunded if
    the operation fails.
    """

    def __init__(self, store: QuotaStore, policy: QuotaPolicy = QuotaPolicy.CHARGE_AFTER):
        self._store = store
        self._policy = policy

    @property
    def store(self) -> QuotaStore:
        return self._store

    @property
    def policy(self) -> QuotaPolicy:
        return self._policy

    async def has_remaining(self, user_id: str, kind: QuotaKind) -> bool:
        return await self._store.remaining(user_id, kind) > 0

    async def decrement(self, user_id: str, kind: QuotaKind) -> None:
        """Consume one unit.

        Raises:
            InsufficientQuota: If the counter is already at zero
        """
        if not await self._store.decrement_if_positive(user_id, kind):
            logger.info("Quota denied: user=%s kind=%s", user_id, kind.value)
            raise InsufficientQuota(user_id, kind.value)

    async def admit(self, user_id: str, kind: QuotaKind) -> bool:
        """Gate an operation before any expensive work.

        Returns:
            True if a unit was already consumed (reserve policy)

        Raises:
            InsufficientQuota: If the user has nothing left
        """
        if self._policy is QuotaPolicy.RESERVE:
            await self.decrement(user_id, kind)
            return True
        if not await self.has_remaining(user_id, kind):
            logger.info("Quota denied: user=%s kind=%s", user_id, kind.value)
            raise InsufficientQuota(user_id, kind.value)
        return False

    async def settle(self, user_id: str, kind: QuotaKind, reserved: bool) -> None:
        """Charge a successful operation unless its unit was reserved."""
        if not reserved:
            await self.decrement(user_id, kind)

    async def refund(self, user_id: str, kind: QuotaKind, reserved: bool) -> None:
        """Return a reserved unit after a failed operation."""
        if reserved:
            await self._store.increment(user_id, kind)
            logger.debug("Refunded %s unit to %s", kind.value, user_id)
