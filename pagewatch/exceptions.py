"""
Exception hierarchy for pagewatch.

All exceptions inherit from WatcherError to allow catching all watcher-related errors.
"""

from datetime import datetime, timezone
from typing import Any


class WatcherError(Exception):
    """Base exception for all watcher errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(WatcherError):
    """Configuration file or value is invalid."""

    def __init__(self, message: str, location: str | None = None):
        super().__init__(
            f"{location}: {message}" if location else message,
            {"location": location},
        )
        self.location = location


# =============================================================================
# Fetch Errors
# =============================================================================


class FetchError(WatcherError):
    """Fetching or parsing a page failed."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(
            f"Fetch failed for {url}: {message}",
            {"url": url, "status_code": status_code},
        )
        self.url = url
        self.status_code = status_code


class FetchTimeoutError(FetchError):
    """Request timed out."""

    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(url, f"Timeout after {timeout_seconds}s")
        self.timeout_seconds = timeout_seconds


class TooManyRedirectsError(FetchError):
    """Too many redirects encountered."""

    def __init__(self, url: str, max_redirects: int):
        super().__init__(url, f"More than {max_redirects} redirects")
        self.max_redirects = max_redirects


class ContentTooLargeError(FetchError):
    """Content exceeds size limit."""

    def __init__(self, url: str, content_length: int, max_size: int):
        super().__init__(
            url,
            f"Content too large: {content_length} > {max_size}",
        )
        self.content_length = content_length
        self.max_size = max_size


class DocumentParseError(FetchError):
    """Fetched body could not be parsed into a document."""

    def __init__(self, url: str, reason: str):
        super().__init__(url, f"Malformed document: {reason}")
        self.reason = reason


# =============================================================================
# Extraction Errors
# =============================================================================


class PathEvaluationError(WatcherError):
    """An XPath expression could not be compiled or evaluated."""

    def __init__(self, expression: str, message: str):
        super().__init__(
            f"XPath {expression!r} failed: {message}",
            {"expression": expression},
        )
        self.expression = expression


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(WatcherError):
    """Storage operation failed."""

    pass


class DedupStoreError(StorageError):
    """Dedup store operation failed."""

    def __init__(self, operation: str, url: str, message: str):
        super().__init__(
            f"Dedup store {operation} failed for {url}: {message}",
            {"operation": operation, "url": url},
        )
        self.operation = operation
        self.url = url


# =============================================================================
# Sink Errors
# =============================================================================


class SinkError(WatcherError):
    """Emitting an extracted record failed."""

    def __init__(self, resource_name: str, message: str):
        super().__init__(
            f"Emit failed for {resource_name}: {message}",
            {"resource_name": resource_name},
        )
        self.resource_name = resource_name
