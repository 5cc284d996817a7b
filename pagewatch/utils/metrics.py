"""
Prometheus metrics for pagewatch.

Provides instrumentation for monitoring scheduler and walk health.
"""

from prometheus_client import Counter, Histogram, Info, start_http_server

# =============================================================================
# Watcher Info
# =============================================================================

WATCHER_INFO = Info(
    "pagewatch",
    "Watcher metadata",
)

# =============================================================================
# Scheduler Metrics
# =============================================================================

TICKS_TOTAL = Counter(
    "pagewatch_ticks_total",
    "Scheduler ticks fired",
    ["resource"],
)

TICKS_SKIPPED = Counter(
    "pagewatch_ticks_skipped_total",
    "Ticks dropped because the previous walk was still running",
    ["resource"],
)

# =============================================================================
# Walk Metrics
# =============================================================================

WALKS_TOTAL = Counter(
    "pagewatch_walks_total",
    "Finished walks by outcome",
    ["resource", "outcome"],
)

WALK_DURATION = Histogram(
    "pagewatch_walk_duration_seconds",
    "Walk duration",
    ["resource"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0],
)

WALK_PAGES = Histogram(
    "pagewatch_walk_pages",
    "Pages fetched per walk",
    ["resource"],
    buckets=[0, 1, 2, 5, 10, 25, 50, 100],
)

# =============================================================================
# Fetch Metrics
# =============================================================================

FETCH_TOTAL = Counter(
    "pagewatch_fetch_total",
    "Total number of fetch operations",
    ["status", "domain"],
)

FETCH_DURATION = Histogram(
    "pagewatch_fetch_duration_seconds",
    "Fetch operation duration",
    ["domain"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

FETCH_CONTENT_SIZE = Histogram(
    "pagewatch_fetch_content_size_bytes",
    "Size of fetched content",
    ["domain"],
    buckets=[1024, 10240, 102400, 1048576, 10485760],  # 1KB to 10MB
)

# =============================================================================
# Extraction / Storage Metrics
# =============================================================================

RECORDS_EMITTED = Counter(
    "pagewatch_records_emitted_total",
    "Extracted records handed to the sink",
    ["resource"],
)

PATH_ERRORS = Counter(
    "pagewatch_path_errors_total",
    "XPath expressions that failed at evaluation time",
)

DEDUP_OPERATIONS = Counter(
    "pagewatch_dedup_operations_total",
    "Dedup store record operations by outcome",
    ["backend", "outcome"],
)

# =============================================================================
# Error Metrics
# =============================================================================

ERRORS = Counter(
    "pagewatch_errors_total",
    "Errors by type",
    ["error_type", "resource"],
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_tick(resource: str, skipped: bool) -> None:
    """Record a scheduler tick."""
    TICKS_TOTAL.labels(resource=resource).inc()
    if skipped:
        TICKS_SKIPPED.labels(resource=resource).inc()


def record_walk(
    resource: str,
    outcome: str,
    duration_seconds: float,
    pages_fetched: int,
) -> None:
    """Record metrics for a finished walk."""
    WALKS_TOTAL.labels(resource=resource, outcome=outcome).inc()
    WALK_DURATION.labels(resource=resource).observe(duration_seconds)
    WALK_PAGES.labels(resource=resource).observe(pages_fetched)


def record_fetch(
    domain: str,
    status: str,
    duration_seconds: float,
    content_size: int = 0,
) -> None:
    """Record metrics for a fetch operation."""
    FETCH_TOTAL.labels(status=status, domain=domain).inc()
    FETCH_DURATION.labels(domain=domain).observe(duration_seconds)
    if content_size:
        FETCH_CONTENT_SIZE.labels(domain=domain).observe(content_size)


def record_emit(resource: str) -> None:
    """Record an emitted record."""
    RECORDS_EMITTED.labels(resource=resource).inc()


def record_path_error() -> None:
    """Record a failed XPath evaluation."""
    PATH_ERRORS.inc()


def record_dedup(backend: str, outcome: str) -> None:
    """Record a dedup store operation."""
    DEDUP_OPERATIONS.labels(backend=backend, outcome=outcome).inc()


def record_error(resource: str, error_type: str) -> None:
    """Record an error."""
    ERRORS.labels(error_type=error_type, resource=resource).inc()


def serve_metrics(port: int, version: str) -> None:
    """Expose the default registry over HTTP."""
    WATCHER_INFO.info({"version": version})
    start_http_server(port)
