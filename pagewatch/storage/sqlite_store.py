"""
Durable dedup store backed by SQLite.

Every URL ever visited gets one row in the ``resources`` table. Inserting a
URL that is already present violates the UNIQUE constraint, and that failure
is the duplicate signal; there is no separate lookup before the insert.
"""

import asyncio
import sqlite3
import threading
from pathlib import Path

from pagewatch.exceptions import DedupStoreError
from pagewatch.models import PersistedResource, RecordOutcome
from pagewatch.utils.logging import WatcherLogger
from pagewatch.utils import metrics

SCHEMA = """
CREATE TABLE IF NOT EXISTS "resources" (
    "id" INTEGER
        NOT NULL
        PRIMARY KEY
        AUTOINCREMENT,
    "url" VARCHAR(65535)
        NOT NULL
        UNIQUE
);
"""

IN_MEMORY = ":memory:"


class SQLiteDedupStore:
    """
    SQLite-backed, append-only record of visited URLs.

    Features:
    - Atomic record-or-detect-duplicate via the UNIQUE constraint
    - AUTOINCREMENT ids, never reused even across restarts
    - Blocking sqlite calls run in a worker thread under a lock
    """

    backend = "sqlite"

    def __init__(
        self,
        path: str | Path = IN_MEMORY,
        logger: WatcherLogger | None = None,
    ):
        """
        Initialize the store and create the schema if needed.

        Args:
            path: Database file, or ":memory:" for a throwaway store.
            logger: Logger instance.
        """
        self.path = str(path)
        self.logger = logger or WatcherLogger("dedup_store")
        self._lock = threading.Lock()
        self._conn = self._connect()

    def _connect(self) -> sqlite3.Connection:
        if self.path != IN_MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            if self.path != IN_MEMORY:
                conn.execute("PRAGMA journal_mode = WAL")
                conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA busy_timeout = 30000")
            with conn:
                conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise DedupStoreError("open", self.path, str(e)) from e
        self.logger.debug("Dedup store opened", path=self.path)
        return conn

    def _record_sync(self, url: str) -> RecordOutcome:
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        'INSERT INTO "resources" ("url") VALUES (?)',
                        (url,),
                    )
            except sqlite3.IntegrityError:
                return RecordOutcome.ALREADY_PRESENT
            except sqlite3.Error as e:
                raise DedupStoreError("record", url, str(e)) from e
        return RecordOutcome.INSERTED

    async def record(self, url: str) -> RecordOutcome:
        """
        Record a URL as visited.

        Args:
            url: URL about to be fetched.

        Returns:
            INSERTED for a new URL, ALREADY_PRESENT if it was recorded before.

        Raises:
            DedupStoreError: If the database is unavailable.
        """
        outcome = await asyncio.to_thread(self._record_sync, url)
        metrics.record_dedup(self.backend, outcome.value)
        return outcome

    def _get_sync(self, url: str) -> PersistedResource | None:
        with self._lock:
            try:
                row = self._conn.execute(
                    'SELECT "id", "url" FROM "resources" WHERE "url" = ?',
                    (url,),
                ).fetchone()
            except sqlite3.Error as e:
                raise DedupStoreError("get", url, str(e)) from e
        if row is None:
            return None
        return PersistedResource(id=row["id"], url=row["url"])

    async def get(self, url: str) -> PersistedResource | None:
        """Get the persisted row for a URL, if any."""
        return await asyncio.to_thread(self._get_sync, url)

    async def contains(self, url: str) -> bool:
        """Check whether a URL has been recorded."""
        return await self.get(url) is not None

    def _count_sync(self) -> int:
        with self._lock:
            try:
                row = self._conn.execute('SELECT COUNT(*) AS count FROM "resources"').fetchone()
            except sqlite3.Error as e:
                raise DedupStoreError("count", self.path, str(e)) from e
        return int(row["count"])

    async def count(self) -> int:
        """Number of URLs ever recorded."""
        return await asyncio.to_thread(self._count_sync)

    def _close_sync(self) -> None:
        with self._lock:
            self._conn.close()

    async def close(self) -> None:
        """Close the database connection."""
        await asyncio.to_thread(self._close_sync)
        self.logger.debug("Dedup store closed", path=self.path)
