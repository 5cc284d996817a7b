"""
Structured logging for pagewatch.

Provides JSON-formatted logging with context propagation.
"""

import logging
import sys
from typing import Any

import structlog


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: str | None = None,
) -> None:
    """
    Configure structured logging for the watcher.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_type: Output format ('json' or 'console').
        log_file: Optional file path to write logs to.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=handlers,
        force=True,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if format_type == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__).

    Returns:
        A bound structured logger.
    """
    return structlog.get_logger(name)


class WatcherLogger:
    """
    Specialized logger for watcher operations with pre-defined event types.
    """

    def __init__(self, name: str = "pagewatch"):
        self._logger = get_logger(name)
        self._context: dict[str, Any] = {}

    def bind(self, **kwargs: Any) -> "WatcherLogger":
        """Bind context to all subsequent log calls."""
        new_logger = WatcherLogger.__new__(WatcherLogger)
        new_logger._logger = self._logger.bind(**kwargs)
        new_logger._context = {**self._context, **kwargs}
        return new_logger

    def walk_start(self, resource: str, url: str, **kwargs: Any) -> None:
        """Log the start of a pagination walk."""
        self._logger.info(
            "walk_start",
            event_type="walk",
            resource=resource,
            url=url,
            **kwargs,
        )

    def walk_end(
        self,
        resource: str,
        outcome: str,
        pages_fetched: int,
        records_emitted: int,
        duration_ms: float,
        **kwargs: Any,
    ) -> None:
        """Log the end of a pagination walk."""
        self._logger.info(
            "walk_end",
            event_type="walk",
            resource=resource,
            outcome=outcome,
            pages_fetched=pages_fetched,
            records_emitted=records_emitted,
            duration_ms=duration_ms,
            **kwargs,
        )

    def tick_skipped(self, resource: str, period_seconds: float, **kwargs: Any) -> None:
        """Log a scheduler tick dropped because a walk is still running."""
        self._logger.warning(
            "tick_skipped",
            event_type="schedule",
            resource=resource,
            period_seconds=period_seconds,
            reason="walk_in_flight",
            **kwargs,
        )

    def fetch_start(self, url: str, **kwargs: Any) -> None:
        """Log the start of a fetch operation."""
        self._logger.info(
            "fetch_start",
            event_type="fetch",
            url=url,
            **kwargs,
        )

    def fetch_success(
        self,
        url: str,
        status_code: int,
        duration_ms: float,
        content_length: int,
        **kwargs: Any,
    ) -> None:
        """Log a successful fetch."""
        self._logger.info(
            "fetch_success",
            event_type="fetch",
            url=url,
            status_code=status_code,
            duration_ms=duration_ms,
            content_length=content_length,
            **kwargs,
        )

    def fetch_error(
        self,
        url: str,
        error: str,
        error_type: str,
        **kwargs: Any,
    ) -> None:
        """Log a fetch error."""
        self._logger.error(
            "fetch_error",
            event_type="fetch",
            url=url,
            error=error,
            error_type=error_type,
            **kwargs,
        )

    def record_emitted(
        self,
        resource: str,
        url: str,
        targets: list[str],
        **kwargs: Any,
    ) -> None:
        """Log an extracted record handed to the sink."""
        self._logger.debug(
            "record_emitted",
            event_type="extraction",
            resource=resource,
            url=url,
            targets=targets,
            **kwargs,
        )

    def path_error(self, expression: str, error: str, **kwargs: Any) -> None:
        """Log an XPath expression that failed at evaluation time."""
        self._logger.error(
            "path_error",
            event_type="extraction",
            expression=expression,
            error=error,
            **kwargs,
        )

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self._logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self._logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error message."""
        self._logger.error(message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log a critical message."""
        self._logger.critical(message, **kwargs)
