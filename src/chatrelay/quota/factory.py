"""Factory for creating quota backends."""

from typing import Any

from .base import QuotaStore


def create_quota_store(
    backend: str = "memory",
    **kwargs: Any
) -> QuotaStore:
    """Create a quota backend.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration
            For sqlite:
                - path: str | Path (default: './chatrelay.db')

    Returns:
        QuotaStore instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryQuotaStore
        return InMemoryQuotaStore()

    elif backend == "sqlite":
        from .sqlite import SQLiteQuotaStore
        return SQLiteQuotaStore(**kwargs)

    raise ValueError(
        f"Unsupported quota backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
