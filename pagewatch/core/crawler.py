"""
Pagination crawler for pagewatch.

Walks one resource: records each page in the dedup store, fetches it,
emits the extracted record and follows the continuation until pagination
ends or a page has been seen before.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable

from pagewatch.exceptions import FetchError, StorageError
from pagewatch.extraction.continuation import ContinuationResolver
from pagewatch.extraction.target_evaluator import TargetEvaluator
from pagewatch.models import (
    Document,
    RecordOutcome,
    ResourceConfig,
    WalkOutcome,
    WalkStats,
)
from pagewatch.sinks import LoggingSink, RecordSink
from pagewatch.storage.factory import DedupStore
from pagewatch.utils.logging import WatcherLogger
from pagewatch.utils.url_utils import is_allowed_continuation
from pagewatch.utils import metrics

FetchFunc = Callable[[str], Awaitable[Document]]


class PaginationCrawler:
    """
    Runs pagination walks.

    A walk never raises: failures end the walk and are reported through
    the returned WalkStats. Cancellation propagates.
    """

    def __init__(
        self,
        dedup_store: DedupStore,
        fetch: FetchFunc,
        sink: RecordSink | None = None,
        evaluator: TargetEvaluator | None = None,
        resolver: ContinuationResolver | None = None,
        logger: WatcherLogger | None = None,
    ):
        """
        Initialize the crawler.

        Args:
            dedup_store: Store of visited URLs.
            fetch: Coroutine function returning a parsed Document for a URL.
            sink: Receiver of extracted records.
            evaluator: Target tree evaluator.
            resolver: Continuation resolver.
            logger: Logger instance.
        """
        self.dedup_store = dedup_store
        self.fetch = fetch
        self.logger = logger or WatcherLogger("crawler")
        self.sink = sink or LoggingSink(self.logger)
        self.evaluator = evaluator or TargetEvaluator()
        self.resolver = resolver or ContinuationResolver(self.evaluator.path_evaluator)

    async def walk(
        self,
        resource: ResourceConfig,
        shutdown: asyncio.Event | None = None,
    ) -> WalkStats:
        """
        Walk a resource starting from its seed URL.

        Args:
            resource: Resource to walk.
            shutdown: Event checked before every page.

        Returns:
            Statistics of the walk.
        """
        stats = WalkStats(resource=resource.name, seed_url=resource.url)
        logger = self.logger.bind(resource=resource.name)
        logger.walk_start(resource=resource.name, url=resource.url)

        try:
            stats.outcome = await self._walk_pages(resource, stats, logger, shutdown)
        except asyncio.CancelledError:
            stats.outcome = WalkOutcome.CANCELLED
            raise
        except Exception as e:
            logger.error(
                "Walk failed",
                url=resource.url,
                error=str(e),
                error_type=type(e).__name__,
            )
            metrics.record_error(resource.name, type(e).__name__)
            stats.error = str(e)
            stats.outcome = WalkOutcome.FAILED
        finally:
            stats.finished_at = datetime.now(timezone.utc)
            outcome = stats.outcome or WalkOutcome.CANCELLED
            metrics.record_walk(
                resource.name,
                outcome.value,
                stats.duration_seconds,
                stats.pages_fetched,
            )
            logger.walk_end(
                resource=resource.name,
                outcome=outcome.value,
                pages_fetched=stats.pages_fetched,
                records_emitted=stats.records_emitted,
                duration_ms=stats.duration_seconds * 1000,
            )

        return stats

    async def _walk_pages(
        self,
        resource: ResourceConfig,
        stats: WalkStats,
        logger: WatcherLogger,
        shutdown: asyncio.Event | None,
    ) -> WalkOutcome:
        current_url = resource.url

        while True:
            if shutdown is not None and shutdown.is_set():
                return WalkOutcome.CANCELLED

            try:
                outcome = await self.dedup_store.record(current_url)
            except StorageError as e:
                logger.error("Dedup store failed", url=current_url, error=str(e))
                metrics.record_error(resource.name, type(e).__name__)
                stats.error = str(e)
                return WalkOutcome.STORAGE_FAILED

            if outcome == RecordOutcome.ALREADY_PRESENT:
                logger.debug("URL already visited", url=current_url)
                return WalkOutcome.ALREADY_VISITED
            stats.visited_urls.append(current_url)

            try:
                document = await self.fetch(current_url)
            except FetchError as e:
                logger.warning(
                    "Walk aborted on fetch failure",
                    url=current_url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                metrics.record_error(resource.name, type(e).__name__)
                stats.error = str(e)
                return WalkOutcome.FETCH_FAILED
            stats.pages_fetched += 1

            if resource.targets is not None:
                record = self.evaluator.evaluate_record(resource.targets, document.root)
                if await self._emit(resource.name, record, document.url, logger):
                    stats.records_emitted += 1

            if resource.continuation is None:
                return WalkOutcome.COMPLETED

            next_url = self.resolver.resolve(
                resource.continuation, document.root, document.url
            )
            if next_url is None:
                return WalkOutcome.COMPLETED
            if not is_allowed_continuation(document.url, next_url):
                logger.warning(
                    "Continuation rejected",
                    url=document.url,
                    next_url=next_url,
                )
                return WalkOutcome.COMPLETED

            logger.debug("Following continuation", url=current_url, next_url=next_url)
            current_url = next_url

    async def _emit(
        self,
        resource_name: str,
        record: dict,
        url: str,
        logger: WatcherLogger,
    ) -> bool:
        """Hand a record to the sink; failures are logged, not raised."""
        try:
            await self.sink.emit(resource_name, record, url)
        except Exception as e:
            logger.error(
                "Sink failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            metrics.record_error(resource_name, type(e).__name__)
            return False

        metrics.record_emit(resource_name)
        logger.record_emitted(resource=resource_name, url=url, targets=list(record))
        return True
