"""
Dedup store backed by Redis.

Lets several watcher processes share one visited-URL record.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from pagewatch.exceptions import DedupStoreError
from pagewatch.models import PersistedResource, RecordOutcome
from pagewatch.utils.logging import WatcherLogger
from pagewatch.utils import metrics


class RedisDedupStore:
    """
    Redis-based, append-only record of visited URLs.

    Ids come from INCR on a sequence key and HSETNX on the url hash acts as
    the uniqueness constraint. An id allocated for a URL that turns out to be
    present is discarded, so ids stay monotonic and are never reused.
    """

    backend = "redis"

    # Redis keys
    URLS_KEY = "pagewatch:resources:urls"
    SEQUENCE_KEY = "pagewatch:resources:seq"

    def __init__(
        self,
        redis_client: redis.Redis,
        logger: WatcherLogger | None = None,
    ):
        """
        Initialize the store.

        Args:
            redis_client: Redis async client.
            logger: Logger instance.
        """
        self.redis = redis_client
        self.logger = logger or WatcherLogger("dedup_store")

    async def record(self, url: str) -> RecordOutcome:
        """
        Record a URL as visited.

        Args:
            url: URL about to be fetched.

        Returns:
            INSERTED for a new URL, ALREADY_PRESENT if it was recorded before.

        Raises:
            DedupStoreError: If Redis is unavailable.
        """
        try:
            resource_id = await self.redis.incr(self.SEQUENCE_KEY)
            created = await self.redis.hsetnx(self.URLS_KEY, url, resource_id)
        except RedisError as e:
            raise DedupStoreError("record", url, str(e)) from e

        outcome = RecordOutcome.INSERTED if created else RecordOutcome.ALREADY_PRESENT
        metrics.record_dedup(self.backend, outcome.value)
        return outcome

    async def get(self, url: str) -> PersistedResource | None:
        """Get the persisted entry for a URL, if any."""
        try:
            resource_id = await self.redis.hget(self.URLS_KEY, url)
        except RedisError as e:
            raise DedupStoreError("get", url, str(e)) from e
        if resource_id is None:
            return None
        return PersistedResource(id=int(resource_id), url=url)

    async def contains(self, url: str) -> bool:
        """Check whether a URL has been recorded."""
        return await self.get(url) is not None

    async def count(self) -> int:
        """Number of URLs ever recorded."""
        try:
            return int(await self.redis.hlen(self.URLS_KEY))
        except RedisError as e:
            raise DedupStoreError("count", self.URLS_KEY, str(e)) from e

    async def close(self) -> None:
        """Close the Redis connection."""
        await self.redis.aclose()
