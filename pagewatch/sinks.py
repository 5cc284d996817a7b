"""
Record sinks for pagewatch.

A sink receives one ExtractedRecord per fetched page, in the order pages
are walked.
"""

import asyncio
import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Protocol

from pagewatch.exceptions import SinkError
from pagewatch.models import ExtractedRecord
from pagewatch.utils.logging import WatcherLogger


class RecordSink(Protocol):
    """Consumer of extracted records."""

    async def emit(self, resource_name: str, record: ExtractedRecord, url: str) -> None:
        """Hand over the record extracted from one page."""
        ...


class LoggingSink:
    """Writes records as structured log events."""

    def __init__(self, logger: WatcherLogger | None = None):
        self.logger = logger or WatcherLogger("sink")

    async def emit(self, resource_name: str, record: ExtractedRecord, url: str) -> None:
        self.logger.info("record", resource=resource_name, url=url, record=record)


class JsonLinesSink:
    """
    Appends records to a JSON-lines file.

    Each line holds the resource name, the page URL, the emission time and
    the record. The path "-" writes to stdout.
    """

    def __init__(self, path: str | Path):
        self.path = str(path)
        self._stream: IO[str] | None = None
        self._lock = asyncio.Lock()

    def _open(self) -> IO[str]:
        if self._stream is None:
            if self.path == "-":
                self._stream = sys.stdout
            else:
                target = Path(self.path)
                target.parent.mkdir(parents=True, exist_ok=True)
                self._stream = target.open("a", encoding="utf-8")
        return self._stream

    def _write(self, line: str) -> None:
        stream = self._open()
        stream.write(line + "\n")
        stream.flush()

    async def emit(self, resource_name: str, record: ExtractedRecord, url: str) -> None:
        """
        Append one record.

        Raises:
            SinkError: If the file cannot be written.
        """
        line = json.dumps(
            {
                "resource": resource_name,
                "url": url,
                "emitted_at": datetime.now(timezone.utc).isoformat(),
                "record": record,
            },
            ensure_ascii=False,
        )
        async with self._lock:
            try:
                await asyncio.to_thread(self._write, line)
            except OSError as e:
                raise SinkError(resource_name, str(e)) from e

    def close(self) -> None:
        """Close the underlying file (stdout is left open)."""
        if self._stream is not None and self._stream is not sys.stdout:
            self._stream.close()
        self._stream = None


@dataclass
class EmittedRecord:
    """A record captured by MemorySink."""

    resource: str
    url: str
    record: ExtractedRecord


@dataclass
class MemorySink:
    """Collects records in memory."""

    records: list[EmittedRecord] = field(default_factory=list)

    async def emit(self, resource_name: str, record: ExtractedRecord, url: str) -> None:
        self.records.append(EmittedRecord(resource=resource_name, url=url, record=record))

    def for_resource(self, resource_name: str) -> list[EmittedRecord]:
        return [r for r in self.records if r.resource == resource_name]

    def to_list(self) -> list[dict[str, Any]]:
        return [
            {"resource": r.resource, "url": r.url, "record": r.record}
            for r in self.records
        ]
