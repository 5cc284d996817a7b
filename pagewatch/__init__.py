"""
pagewatch

A web watcher daemon: polls configured resources on a fixed period, follows
their pagination, extracts structured records with XPath target trees and
remembers every visited page so it is fetched only once.
"""

__version__ = "0.1.0"

from pagewatch.config import AppConfig, WatcherSettings, load_config, load_settings
from pagewatch.exceptions import WatcherError
from pagewatch.models import (
    ContinuationRule,
    ExtractedRecord,
    ExtractionRule,
    RecordOutcome,
    ResourceConfig,
    TargetNode,
    WalkOutcome,
    WalkStats,
)
from pagewatch.core.crawler import PaginationCrawler
from pagewatch.core.scheduler import ResourceScheduler

__all__ = [
    "AppConfig",
    "ContinuationRule",
    "ExtractedRecord",
    "ExtractionRule",
    "PaginationCrawler",
    "RecordOutcome",
    "ResourceConfig",
    "ResourceScheduler",
    "TargetNode",
    "WalkOutcome",
    "WalkStats",
    "WatcherError",
    "WatcherSettings",
    "load_config",
    "load_settings",
]
