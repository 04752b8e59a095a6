"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking admission attempts',
    ['status']  # success, rejected, error
)

booking_rejections = Counter(
    'booking_rejections_total',
    'Bookings rejected by an admission rule',
    ['reason']
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking admission latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Database metrics
db_retries = Counter(
    'db_retry_attempts_total',
    'Admission retries due to version conflicts or constraint violations',
    ['reason']  # version_conflict, integrity_error, lock_contention
)

voucher_collisions = Counter(
    'voucher_collisions_total',
    'Generated voucher codes that were already taken'
)

events_provisioned = Counter(
    'events_provisioned_total',
    'Events created by bulk provisioning'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, rejected, error"""
    booking_attempts.labels(status=status).inc()


def record_rejection(reason: str):
    booking_rejections.labels(reason=reason).inc()


def record_retry(reason: str):
    """Record admission retry. Reason: version_conflict, integrity_error, lock_contention"""
    db_retries.labels(reason=reason).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
