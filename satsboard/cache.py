# satsboard/cache.py
# Purpose: Single-slot TTL cache in front of the upstream market sources.
# Why: CoinGecko rate-limits aggressively; at most one refresh per TTL window.
# Pitfalls: Process memory only; every worker process holds its own slot.

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from satsboard.data_client import MarketDataClient
from satsboard.errors import UpstreamError
from satsboard.observability import CACHE_LOOKUPS, DEGRADED_SERVED
from satsboard.schemas import (
    DEFAULT_BLOCK_HEIGHT,
    DEFAULT_MEMPOOL,
    FALLBACK_SNAPSHOT,
    MarketSnapshot,
)
from satsboard.settings import ProxySettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    snapshot: MarketSnapshot
    fetched_at: float


class SnapshotCache:
    """
    Holds the last good MarketSnapshot and decides when to go upstream.

    snapshot():
      - fresh entry (age < ttl)   -> returned as-is, no network
      - otherwise                 -> refresh(); primary failure -> fallback
    With single_flight on, concurrent misses await one shared refresh.
    """

    def __init__(
        self,
        client: MarketDataClient,
        settings: ProxySettings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._settings = settings
        self._clock = clock
        self._entry: CacheEntry | None = None
        self._inflight: asyncio.Future[MarketSnapshot] | None = None

    @property
    def entry(self) -> CacheEntry | None:
        return self._entry

    def age(self) -> float | None:
        if self._entry is None:
            return None
        return self._clock() - self._entry.fetched_at

    def get(self) -> MarketSnapshot | None:
        """Return the cached snapshot if still within TTL, else None."""
        age = self.age()
        if age is None or age >= self._settings.cache_ttl_sec:
            return None
        return self._entry.snapshot

    def clear(self) -> None:
        self._entry = None

    async def refresh(self) -> MarketSnapshot:
        """
        Go upstream unconditionally and store the result.
        Raises UpstreamError when the primary price source fails; secondary
        sources degrade to their defaults field by field.
        """
        started = self._clock()
        quote = await self._client.fetch_price()

        mempool, height = await asyncio.gather(
            self._client.fetch_mempool(),
            self._client.fetch_block_height(),
            return_exceptions=True,
        )
        if isinstance(mempool, BaseException):
            if not isinstance(mempool, UpstreamError):
                raise mempool
            logger.warning("mempool degraded to default [%s]: %s", mempool.code.value, mempool)
            DEGRADED_SERVED.labels(kind="mempool").inc()
            mempool = DEFAULT_MEMPOOL
        if isinstance(height, BaseException):
            if not isinstance(height, UpstreamError):
                raise height
            logger.warning(
                "block height degraded to default [%s]: %s", height.code.value, height
            )
            DEGRADED_SERVED.labels(kind="block_height").inc()
            height = DEFAULT_BLOCK_HEIGHT

        snap = MarketSnapshot(bitcoin=quote, mempool=mempool, blockHeight=height)
        self._entry = CacheEntry(snapshot=snap, fetched_at=started)
        return snap

    async def snapshot(self) -> MarketSnapshot:
        hit = self.get()
        if hit is not None:
            CACHE_LOOKUPS.labels(result="hit").inc()
            return hit
        CACHE_LOOKUPS.labels(result="miss").inc()

        if not self._settings.single_flight:
            return await self._refresh_or_fallback()

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh_or_fallback())
            self._inflight.add_done_callback(self._clear_inflight)
        # shield: one cancelled caller must not cancel the shared refresh
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, fut: asyncio.Future) -> None:
        if self._inflight is fut:
            self._inflight = None

    async def _refresh_or_fallback(self) -> MarketSnapshot:
        try:
            return await self.refresh()
        except UpstreamError as e:
            logger.warning("primary source failed [%s] (%s); serving fallback", e.code.value, e)
            if self._settings.serve_stale_on_error and self._entry is not None:
                DEGRADED_SERVED.labels(kind="stale").inc()
                return self._entry.snapshot
            DEGRADED_SERVED.labels(kind="fallback").inc()
            return FALLBACK_SNAPSHOT
