import time
from collections.abc import Callable
from dataclasses import dataclass

from ..errors import RateLimitExceeded

SWEEP_INTERVAL = 300.0


@dataclass
class _Bucket:
    tokens: float
    updated: float


class RateLimiter:
    """Per-key token bucket.

    Refills at `requests_per_minute / 60` tokens per second up to `burst`
    tokens (twice the per-minute rate unless given). Buckets that have
    refilled completely are dropped on a periodic sweep; a dropped key
    starts again from a full bucket, so eviction never changes a decision.
    """

    def __init__(
        self,
        requests_per_minute: int,
        burst: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = SWEEP_INTERVAL
    ):
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self._rate = requests_per_minute / 60.0
        self._burst = float(burst if burst is not None else requests_per_minute * 2)
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()

    def __len__(self) -> int:
        """Number of keys currently tracked."""
        return len(self._buckets)

    def _refilled(self, bucket: _Bucket, now: float) -> float:
        elapsed = max(0.0, now - bucket.updated)
        return min(self._burst, bucket.tokens + elapsed * self._rate)

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self._sweep_interval:
            return
        self._last_sweep = now
        full = [key for key, bucket in self._buckets.items() if self._refilled(bucket, now) >= self._burst]
        for key in full:
            del self._buckets[key]

    def allow(self, key: str) -> bool:
        """Take one token for `key` if available."""
        now = self._clock()
        self._sweep(now)
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = _Bucket(tokens=self._burst, updated=now)
        else:
            bucket.tokens = self._refilled(bucket, now)
            bucket.updated = now

        if bucket.tokens < 1.0:
            return False
        bucket.tokens -= 1.0
        return True

    def check(self, key: str) -> None:
        """Take one token or raise.

        Raises:
            RateLimitExceeded: If the bucket for `key` is empty
        """
        if not self.allow(key):
            raise RateLimitExceeded(key)
