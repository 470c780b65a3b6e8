"""Prometheus metrics for the client data-access layer.

Provides:
- Gateway request count and duration per method/status
- Session expiry signal count
- Loader fallback count per resource
- track_gateway_call(): Context manager recording one gateway round trip
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from prometheus_client import Counter, Histogram

# ── Gateway Metrics ──────────────────────────────────────────────────────────

gateway_requests_total = Counter(
    "crm_gateway_requests_total",
    "Total outbound gateway requests",
    ["method", "status"],
)

gateway_request_duration_seconds = Histogram(
    "crm_gateway_request_duration_seconds",
    "Gateway request duration in seconds",
    ["method"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

session_expired_total = Counter(
    "crm_session_expired_total",
    "Session expiry signals published by the gateway",
)

# ── Loader Metrics ───────────────────────────────────────────────────────────

loader_fallback_total = Counter(
    "crm_loader_fallback_total",
    "List loads served from the fallback dataset",
    ["resource"],
)


@asynccontextmanager
async def track_gateway_call(method: str) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager that tracks one gateway round trip.

    Usage:
        async with track_gateway_call("GET") as tracker:
            response = await client.send(request)
            tracker["status"] = response.status_code

    Records the duration and a request count labelled with the status
    set in the tracker dict, or ``"transport_error"`` if the body raised
    before a status was recorded.
    """
    tracker: dict[str, Any] = {"status": None}
    start_time = time.perf_counter()

    try:
        yield tracker
    except Exception:
        if tracker["status"] is None:
            tracker["status"] = "transport_error"
        raise
    finally:
        duration = time.perf_counter() - start_time

        gateway_requests_total.labels(
            method=method,
            status=str(tracker["status"]),
        ).inc()

        gateway_request_duration_seconds.labels(method=method).observe(duration)
