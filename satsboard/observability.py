# satsboard/observability.py
from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from contextlib import contextmanager

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# ---- Prometheus metrics (low-cardinality labels) ----
REQUEST_COUNT = Counter(
    "satsboard_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "satsboard_http_request_duration_seconds",
    "HTTP request latency (seconds)",
    buckets=(0.005, 0.01, 0.02, 0.05, 0.1, 0.2, 0.5, 1.0, 2.5, 5.0),
)

CACHE_LOOKUPS = Counter(
    "satsboard_cache_lookups_total",
    "Snapshot cache lookups",
    ["result"],  # hit | miss
)

UPSTREAM_FETCHES = Counter(
    "satsboard_upstream_fetches_total",
    "Upstream fetch outcomes",
    ["source", "result"],  # result: ok or the lowercased ErrorCode
)

UPSTREAM_LATENCY = Histogram(
    "satsboard_upstream_fetch_duration_seconds",
    "Upstream fetch latency (seconds)",
    ["source"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

DEGRADED_SERVED = Counter(
    "satsboard_degraded_total",
    "Snapshots served with defaulted data",
    ["kind"],  # fallback | stale | mempool | block_height
)


@contextmanager
def timer_ms():
    start = time.perf_counter()
    yield lambda: int((time.perf_counter() - start) * 1000)


def metrics_endpoint():
    """Return Prometheus exposition format."""
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


# ---- Per-request timing + JSON request log ----
async def timing_middleware(request: Request, call_next: Callable):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    path = request.url.path
    status = str(response.status_code)

    REQUEST_COUNT.labels(method=request.method, path=path, status=status).inc()
    REQUEST_LATENCY.observe(elapsed)

    logging.getLogger("request").info(
        json.dumps(
            {
                "method": request.method,
                "path": path,
                "status": status,
                "duration_s": round(elapsed, 6),
                "client": request.client.host if request.client else None,
            }
        )
    )
    return response
