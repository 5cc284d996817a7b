"""Utility modules for pagewatch."""

from pagewatch.utils.logging import WatcherLogger, get_logger, setup_logging
from pagewatch.utils.url_utils import (
    get_domain,
    get_scheme,
    is_valid_url,
    resolve_url,
)

__all__ = [
    "WatcherLogger",
    "get_domain",
    "get_logger",
    "get_scheme",
    "is_valid_url",
    "resolve_url",
    "setup_logging",
]
