"""Prometheus metrics for the billing API.

Exposes key metrics for monitoring:
- Request counts by endpoint and status
- Request duration histograms
- Batch evaluation sizes

Engine-level counters (bills evaluated, rate resolutions, audit entries) are
defined in billing.engine.service and exported through the same registry.

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5),
)

# Batch metrics
batch_size_bills = Histogram(
    "billing_batch_size_bills",
    "Number of bills per batch evaluation request",
    buckets=(1, 10, 50, 100, 250, 500),
)

rejected_bills_total = Counter(
    "billing_rejected_bills_total",
    "Total bills rejected at the API boundary",
    ["reason"],  # validation, contract
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
