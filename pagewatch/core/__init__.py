"""Core watcher modules."""

from pagewatch.core.crawler import FetchFunc, PaginationCrawler
from pagewatch.core.fetcher import Fetcher, FetcherConfig, parse_document
from pagewatch.core.scheduler import ResourceScheduler, ResourceState

__all__ = [
    "FetchFunc",
    "Fetcher",
    "FetcherConfig",
    "PaginationCrawler",
    "ResourceScheduler",
    "ResourceState",
    "parse_document",
]
