"""
Core data models for pagewatch.

These models are used throughout the codebase for type safety and serialization.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Union


# =============================================================================
# Enums
# =============================================================================


class ExtractionRule(str, Enum):
    """
    How a value is pulled out of a matched node.

    Each member is backed by an extractor in ``pagewatch.extraction.rules``.
    """

    TEXT = "text"

    @classmethod
    def parse(cls, raw: str) -> "ExtractionRule":
        """Parse a rule name case-insensitively ("Text", "text")."""
        try:
            return cls(raw.strip().lower())
        except ValueError:
            known = ", ".join(member.value for member in cls)
            raise ValueError(f"unknown extraction rule {raw!r} (known: {known})") from None


class RecordOutcome(str, Enum):
    """Result of recording a URL in the dedup store."""

    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"


class WalkOutcome(str, Enum):
    """How a pagination walk ended."""

    COMPLETED = "completed"
    ALREADY_VISITED = "already_visited"
    FETCH_FAILED = "fetch_failed"
    STORAGE_FAILED = "storage_failed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# =============================================================================
# Rule Tree
# =============================================================================


@dataclass(frozen=True)
class TargetNode:
    """
    One node of the recursive extraction tree.

    A node with ``extract`` produces a value per matched node; a node with
    ``then`` produces a nested record per matched node. Both use the matched
    node as their context.
    """

    name: str
    path: str
    extract: ExtractionRule | None = None
    then: dict[str, "TargetNode"] | None = None


@dataclass(frozen=True)
class ContinuationRule:
    """XPath yielding the address of the next page."""

    ref: str


@dataclass(frozen=True)
class ResourceConfig:
    """A resource which is polled periodically."""

    url: str
    period: timedelta
    targets: TargetNode | None = None
    continuation: ContinuationRule | None = None
    name: str = ""

    def __post_init__(self) -> None:
        if self.period <= timedelta(0):
            raise ValueError(f"period must be positive, got {self.period}")
        if not self.name:
            object.__setattr__(self, "name", self.url)

    @property
    def period_seconds(self) -> float:
        return self.period.total_seconds()


# =============================================================================
# Extraction Output
# =============================================================================

# Reserved key holding the value of a target that both extracts and recurses.
VALUE_KEY = "$value"

ExtractedEntry = Union[str, "ExtractedRecord"]
ExtractedRecord = dict[str, list[ExtractedEntry]]


# =============================================================================
# Fetch / Storage Models
# =============================================================================


@dataclass
class Document:
    """A fetched and parsed page."""

    url: str
    root: Any
    status_code: int | None = None


@dataclass(frozen=True)
class PersistedResource:
    """A URL recorded in the dedup store."""

    id: int
    url: str


# =============================================================================
# Walk Statistics
# =============================================================================


@dataclass
class WalkStats:
    """Statistics for one pagination walk."""

    resource: str
    seed_url: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    outcome: WalkOutcome | None = None
    pages_fetched: int = 0
    records_emitted: int = 0
    visited_urls: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "resource": self.resource,
            "seed_url": self.seed_url,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "outcome": self.outcome.value if self.outcome else None,
            "pages_fetched": self.pages_fetched,
            "records_emitted": self.records_emitted,
            "visited_urls": list(self.visited_urls),
            "error": self.error,
        }
