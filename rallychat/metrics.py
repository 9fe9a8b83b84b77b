"""
Prometheus metrics for the chat service.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Message lifecycle counters (sends, status transitions, reactions, deletes)

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

# Using default buckets: .005, .01, .025, .05, .075, .1, .25, .5, .75, 1.0, 2.5, 5.0, 7.5, 10.0
request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

chat_messages_sent_total = Counter(
    "chat_messages_sent_total",
    "Outgoing messages appended to a conversation"
)

# status: delivered, read
chat_status_transitions_total = Counter(
    "chat_status_transitions_total",
    "Applied message status transitions",
    labelnames=["status"]
)

# action: added, removed
chat_reaction_toggles_total = Counter(
    "chat_reaction_toggles_total",
    "Reaction toggles by outcome",
    labelnames=["action"]
)

chat_messages_deleted_total = Counter(
    "chat_messages_deleted_total",
    "Messages removed after a confirmed delete"
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


def record_message_sent() -> None:
    chat_messages_sent_total.inc()


def record_status_transition(status: str) -> None:
    """
    Record an applied status transition.

    Args:
        status: The status the message moved to ("delivered" or "read")
    """
    chat_status_transitions_total.labels(status=status).inc()


def record_reaction_toggle(action: str) -> None:
    chat_reaction_toggles_total.labels(action=action).inc()


def record_message_deleted() -> None:
    chat_messages_deleted_total.inc()


def get_metrics() -> bytes:
    """
    Generate Prometheus exposition format metrics.

    Returns:
        Metrics in Prometheus text format as bytes
    """
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
