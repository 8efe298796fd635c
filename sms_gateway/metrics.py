"""
Prometheus metrics for the SMS gateway.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Channel call counter (method, outcome)
- Store query counter (table)

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# outcome: success, not_implemented, or the error code returned to the caller
channel_calls_total = Counter(
    "channel_calls_total",
    "Total channel method calls by outcome",
    labelnames=["method", "outcome"]
)

# One increment per query sent to the message store; conversation listing
# costs 1 + N of these.
store_queries_total = Counter(
    "store_queries_total",
    "Total queries issued against the message store",
    labelnames=["table"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    normalized_path = path.split("?")[0]

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_channel_call(method: str, outcome: str) -> None:
    """
    Record the outcome of one channel call.

    Args:
        method: Channel method name as sent by the caller
        outcome: "success", "not_implemented", or an error code
    """
    channel_calls_total.labels(method=method, outcome=outcome).inc()


def record_store_query(table: str) -> None:
    store_queries_total.labels(table=table).inc()


def get_metrics() -> bytes:
    """
    Generate Prometheus exposition format metrics.
    """
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
