"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Booking metrics
booking_attempts = Counter(
    "booking_attempts_total",
    "Total booking write attempts",
    ["status"],  # created, confirmed, cancelled, conflict, error
)

booking_latency = Histogram(
    "booking_latency_seconds",
    "Booking creation latency",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

# Availability metrics
availability_lookups = Counter(
    "availability_lookups_total",
    "Availability resolver lookups",
    ["source", "result"],  # source: override/computed/fallback, result: ok/degraded
)

# Promotion metrics
promo_validations = Counter(
    "promo_validations_total",
    "Promotion code validations",
    ["result"],  # accepted, rejected, error
)

# Database metrics
db_operations = Counter(
    "db_operations_total",
    "Total database operations",
    ["operation"],  # read, write, retry, error
)

db_retries = Counter(
    "db_retry_attempts_total",
    "Database retry attempts due to version conflicts",
)

# Cache metrics
cache_operations = Counter(
    "cache_operations_total",
    "Cache operations",
    ["operation", "result"],  # get/set/invalidate, hit/miss/error
)


def metrics_endpoint() -> Response:
    """Prometheus exposition for the /metrics route."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: created, confirmed, cancelled, conflict, error"""
    booking_attempts.labels(status=status).inc()


def record_availability_lookup(source: str, degraded: bool = False):
    availability_lookups.labels(source=source, result="degraded" if degraded else "ok").inc()


def record_promo_validation(result: str):
    promo_validations.labels(result=result).inc()


def record_db_operation(operation: str):
    """Record database operation. Operation: read, write, retry, error"""
    db_operations.labels(operation=operation).inc()
    if operation == "retry":
        db_retries.inc()


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
