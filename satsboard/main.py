# satsboard/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import Depends, FastAPI

from satsboard.cache import SnapshotCache
from satsboard.data_client import MarketDataClient, build_http_client
from satsboard.logging_conf import setup_logging

# --- Observability ---
from satsboard.observability import metrics_endpoint, timing_middleware

# --- Routers ---
from satsboard.routes_snapshot import get_cache
from satsboard.routes_snapshot import router as snapshot_router
from satsboard.routes_stream import router as stream_router
from satsboard.schemas import HealthResponse, VersionResponse
from satsboard.settings import ProxySettings
from satsboard.version import SERVICE_VERSION, version_payload


def create_app(settings: ProxySettings | None = None, http=None) -> FastAPI:
    """
    Build the proxy app. One SnapshotCache per app, created at startup.
    `http` lets tests inject an httpx.AsyncClient with a mock transport.
    """
    settings = settings or ProxySettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = http or build_http_client(settings)
        app.state.settings = settings
        app.state.cache = SnapshotCache(MarketDataClient(client, settings), settings)
        try:
            yield
        finally:
            if http is None:
                await client.aclose()

    app = FastAPI(title="satsboard", version=SERVICE_VERSION, lifespan=lifespan)

    # --- Include routers ---
    app.include_router(snapshot_router)
    app.include_router(stream_router)

    # --- Observability ---
    app.middleware("http")(timing_middleware)

    # --- Utility endpoints ---
    @app.get("/health", response_model=HealthResponse)
    def health(cache: SnapshotCache = Depends(get_cache)):
        age = cache.age()
        # degraded: nothing fetched yet, or the slot is older than two TTLs
        stale = age is None or age > 2 * settings.cache_ttl_sec
        return HealthResponse(
            status="degraded" if stale else "ok",
            as_of=datetime.now(UTC).isoformat(),
            cache_age_s=round(age, 3) if age is not None else None,
        )

    @app.get("/version", response_model=VersionResponse)
    def version():
        return VersionResponse(**version_payload())

    @app.get("/metrics")
    def metrics():
        return metrics_endpoint()

    return app


# --- App (uvicorn satsboard.main:app) ---
setup_logging()
app = create_app()
