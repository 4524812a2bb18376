# satsboard/routes_snapshot.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from satsboard.cache import SnapshotCache
from satsboard.observability import DEGRADED_SERVED
from satsboard.schemas import FALLBACK_SNAPSHOT, MarketSnapshot

router = APIRouter(tags=["snapshot"])
logger = logging.getLogger(__name__)


def get_cache(request: Request) -> SnapshotCache:
    """The process-wide cache built in the app lifespan."""
    return request.app.state.cache


async def current_snapshot(cache: SnapshotCache) -> MarketSnapshot:
    """Never raises: anything unexpected still yields the fallback."""
    try:
        return await cache.snapshot()
    except Exception:
        logger.exception("snapshot refresh crashed; serving fallback")
        DEGRADED_SERVED.labels(kind="fallback").inc()
        return FALLBACK_SNAPSHOT


@router.get("/snapshot", response_model=MarketSnapshot)
async def snapshot(cache: SnapshotCache = Depends(get_cache)) -> MarketSnapshot:
    return await current_snapshot(cache)


# Path the original web dashboard polled
@router.get("/api/bitcoin", response_model=MarketSnapshot, include_in_schema=False)
async def snapshot_legacy(cache: SnapshotCache = Depends(get_cache)) -> MarketSnapshot:
    return await current_snapshot(cache)
