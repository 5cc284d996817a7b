"""
Factory for creating dedup stores based on configuration.

Enables switching between the SQLite and Redis backends at runtime based on
configuration settings.
"""

from typing import Protocol, Union

import redis.asyncio as redis

from pagewatch.config import DedupBackend, WatcherSettings
from pagewatch.models import PersistedResource, RecordOutcome
from pagewatch.storage.redis_store import RedisDedupStore
from pagewatch.storage.sqlite_store import SQLiteDedupStore
from pagewatch.utils.logging import WatcherLogger


# Type alias for either store type
AnyDedupStore = Union[SQLiteDedupStore, RedisDedupStore]


class DedupStore(Protocol):
    """Protocol defining the common interface for dedup stores."""

    backend: str

    async def record(self, url: str) -> RecordOutcome:
        """Atomically record a URL, reporting whether it was new."""
        ...

    async def get(self, url: str) -> PersistedResource | None:
        """Get the persisted entry for a URL."""
        ...

    async def count(self) -> int:
        """Number of recorded URLs."""
        ...

    async def close(self) -> None:
        """Release the backend connection."""
        ...


def create_dedup_store(
    settings: WatcherSettings,
    logger: WatcherLogger | None = None,
) -> AnyDedupStore:
    """
    Create a dedup store based on settings.

    Args:
        settings: Watcher settings.
        logger: Logger instance.

    Returns:
        Configured dedup store.

    Raises:
        ValueError: If the backend is unknown.
    """
    logger = logger or WatcherLogger("dedup_store")

    if settings.dedup_backend == DedupBackend.SQLITE:
        logger.info("Using SQLite dedup store", path=settings.database_path)
        return SQLiteDedupStore(settings.database_path, logger=logger)

    if settings.dedup_backend == DedupBackend.REDIS:
        logger.info("Using Redis dedup store", redis_url=settings.redis_url)
        return RedisDedupStore(redis.from_url(settings.redis_url), logger=logger)

    raise ValueError(f"Unknown dedup backend: {settings.dedup_backend}")
