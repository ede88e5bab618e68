"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

import functools
import time

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Membership metrics
membership_operations = Counter(
    'pregame_membership_operations_total',
    'Pregame membership operations',
    ['operation', 'outcome']  # operation: join/request/approve/decline; outcome: success or error code
)

membership_latency = Histogram(
    'pregame_membership_latency_seconds',
    'Pregame membership operation latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Read-side metrics
mutual_lookups = Counter(
    'mutual_lookups_total',
    'Mutual-overlap lookups',
    ['scope']  # event, pregame
)

mutual_candidates = Histogram(
    'mutual_candidates',
    'Candidate users compared per mutual-overlap lookup',
    buckets=[0, 1, 5, 10, 25, 50, 100, 250, 500]
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_membership_operation(operation: str, outcome: str):
    """Record a membership operation. Outcome: success or an error code."""
    membership_operations.labels(operation=operation, outcome=outcome).inc()


def record_mutual_lookup(scope: str, candidate_count: int):
    mutual_lookups.labels(scope=scope).inc()
    mutual_candidates.observe(candidate_count)


def track_membership(operation: str):
    """Decorator timing a membership coroutine and counting its outcome."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                record_membership_operation(operation, getattr(exc, "code", "error"))
                raise
            finally:
                membership_latency.labels(operation=operation).observe(time.perf_counter() - start)
            record_membership_operation(operation, "success")
            return result

        return wrapper

    return decorator
