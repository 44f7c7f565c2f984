"""Quota accounting and rate limiting."""

from .base import QuotaStore
from .factory import create_quota_store
from .gate import QuotaGate
from .in_memory import InMemoryQuotaStore
from .limiter import RateLimiter
from .models import QuotaCounter, QuotaKind
from .sqlite import SQLiteQuotaStore

__all__ = [
    "QuotaStore",
    "create_quota_store",
    "QuotaGate",
    "InMemoryQuotaStore",
    "RateLimiter",
    "QuotaCounter",
    "QuotaKind",
    "SQLiteQuotaStore",
]
