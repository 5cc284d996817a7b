"""
Periodic resource scheduler for pagewatch.

Fires a pagination walk for every resource on its own fixed cadence and
keeps at most one walk per resource in flight.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pagewatch.core.crawler import PaginationCrawler
from pagewatch.models import ResourceConfig, WalkOutcome, WalkStats
from pagewatch.utils.logging import WatcherLogger
from pagewatch.utils import metrics


@dataclass
class ResourceState:
    """Scheduling state of a single resource."""

    resource: ResourceConfig
    ticks: int = 0
    ticks_skipped: int = 0
    walks_started: int = 0
    last_outcome: WalkOutcome | None = None
    last_walk_at: datetime | None = None
    in_flight: asyncio.Task | None = None

    @property
    def walk_in_flight(self) -> bool:
        return self.in_flight is not None and not self.in_flight.done()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "url": self.resource.url,
            "period_seconds": self.resource.period_seconds,
            "ticks": self.ticks,
            "ticks_skipped": self.ticks_skipped,
            "walks_started": self.walks_started,
            "walk_in_flight": self.walk_in_flight,
            "last_outcome": self.last_outcome.value if self.last_outcome else None,
            "last_walk_at": self.last_walk_at.isoformat() if self.last_walk_at else None,
        }


class ResourceScheduler:
    """
    Schedules pagination walks for a fixed set of resources.

    Features:
    - One ticker task per resource, ticking at start + k * period
    - Ticks arriving while the previous walk runs are dropped and logged
    - Resources never block each other
    - Graceful shutdown with a grace period for in-flight walks
    """

    def __init__(
        self,
        resources: list[ResourceConfig],
        crawler: PaginationCrawler,
        logger: WatcherLogger | None = None,
        shutdown_grace_seconds: float = 10.0,
    ):
        """
        Initialize the scheduler.

        Args:
            resources: Resources to poll.
            crawler: Crawler performing the walks.
            logger: Logger instance.
            shutdown_grace_seconds: Time in-flight walks get to finish on stop.
        """
        self.crawler = crawler
        self.logger = logger or WatcherLogger("scheduler")
        self.shutdown_grace_seconds = shutdown_grace_seconds

        self._states = {resource.name: ResourceState(resource) for resource in resources}
        self._shutdown = asyncio.Event()
        self._tickers: list[asyncio.Task] = []
        self._walks: set[asyncio.Task] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def shutdown_event(self) -> asyncio.Event:
        return self._shutdown

    async def start(self) -> None:
        """Start one ticker per resource."""
        if self._running:
            return

        self._running = True
        self._shutdown.clear()
        self.logger.info("Starting scheduler", resources=len(self._states))

        for state in self._states.values():
            task = asyncio.create_task(
                self._tick_loop(state), name=f"ticker:{state.resource.name}"
            )
            self._tickers.append(task)

    def request_shutdown(self) -> None:
        """Ask tickers and walks to stop. Safe to call from a signal handler."""
        if not self._shutdown.is_set():
            self.logger.info("Shutdown requested")
            self._shutdown.set()

    async def stop(self, grace: float | None = None) -> None:
        """
        Stop ticking and wind down in-flight walks.

        Args:
            grace: Seconds in-flight walks get to finish before being
                cancelled. Defaults to shutdown_grace_seconds.
        """
        if not self._running:
            return

        grace = self.shutdown_grace_seconds if grace is None else grace
        self.request_shutdown()

        for ticker in self._tickers:
            ticker.cancel()
        await asyncio.gather(*self._tickers, return_exceptions=True)
        self._tickers.clear()

        walks = list(self._walks)
        if walks:
            _, pending = await asyncio.wait(walks, timeout=grace)
            if pending:
                self.logger.warning("Cancelling walks after grace period", walks=len(pending))
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

        self._running = False
        self.logger.info("Scheduler stopped", stats=self.get_stats())

    async def run(self) -> None:
        """Run until shutdown is requested, then stop."""
        await self.start()
        try:
            await self._shutdown.wait()
        finally:
            await self.stop()

    async def run_once(self) -> list[WalkStats]:
        """Walk every resource once, concurrently, and return the results."""
        results = await asyncio.gather(
            *(self._walk_once(state) for state in self._states.values())
        )
        return list(results)

    async def _walk_once(self, state: ResourceState) -> WalkStats:
        state.walks_started += 1
        state.last_walk_at = datetime.now(timezone.utc)
        return await self._guarded_walk(state)

    async def _guarded_walk(self, state: ResourceState) -> WalkStats:
        """Run a walk; a crawler error becomes a failed walk of this resource only."""
        resource = state.resource
        try:
            stats = await self.crawler.walk(resource, self._shutdown)
        except asyncio.CancelledError:
            state.last_outcome = WalkOutcome.CANCELLED
            raise
        except Exception as e:
            self.logger.error(
                "Walk failed unexpectedly",
                resource=resource.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            metrics.record_error(resource.name, type(e).__name__)
            stats = WalkStats(
                resource=resource.name,
                seed_url=resource.url,
                outcome=WalkOutcome.FAILED,
                error=str(e),
                finished_at=datetime.now(timezone.utc),
            )
        state.last_outcome = stats.outcome
        return stats

    async def _tick_loop(self, state: ResourceState) -> None:
        loop = asyncio.get_running_loop()
        period = state.resource.period_seconds
        start = loop.time()
        tick = 0

        while not self._shutdown.is_set():
            self._on_tick(state)

            tick += 1
            now = loop.time()
            next_fire = start + tick * period
            if next_fire <= now:
                # Fell behind; skip the missed ticks to realign the cadence.
                tick = int((now - start) // period) + 1
                next_fire = start + tick * period

            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=next_fire - now)
            except asyncio.TimeoutError:
                continue

    def _on_tick(self, state: ResourceState) -> None:
        resource = state.resource
        state.ticks += 1

        if state.walk_in_flight:
            state.ticks_skipped += 1
            metrics.record_tick(resource.name, skipped=True)
            self.logger.tick_skipped(
                resource=resource.name, period_seconds=resource.period_seconds
            )
            return

        metrics.record_tick(resource.name, skipped=False)
        state.walks_started += 1
        state.last_walk_at = datetime.now(timezone.utc)

        task = asyncio.create_task(self._guarded_walk(state), name=f"walk:{resource.name}")
        state.in_flight = task
        self._walks.add(task)
        task.add_done_callback(self._walks.discard)

    def get_stats(self) -> dict[str, dict[str, Any]]:
        """Get per-resource scheduling statistics."""
        return {name: state.to_dict() for name, state in self._states.items()}

    async def __aenter__(self) -> "ResourceScheduler":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.stop()
