"""
Upstream market data client for the snapshot proxy.

Sources:
  price         CoinGecko simple/price  -> {"bitcoin": {"usd", "lkr", "usd_24h_change"}}
  mempool       mempool.space /mempool  -> {"count", "vsize", ...}
  block_height  mempool.space tip       -> 875000 (plain text)

Notes / Pitfalls:
- CoinGecko's free tier rate-limits hard (429); the cache in front of this
  client is what keeps us under the limit.
- Every failure mode (non-2xx, network error, timeout, bad body) surfaces as an
  UpstreamError subclass so callers can degrade uniformly.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from satsboard.errors import (
    MalformedPayload,
    UpstreamError,
    UpstreamStatusError,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from satsboard.observability import UPSTREAM_FETCHES, UPSTREAM_LATENCY, timer_ms
from satsboard.schemas import BitcoinQuote, MempoolStats
from satsboard.settings import ProxySettings
from satsboard.validator import parse_block_height, parse_mempool, parse_price

logger = logging.getLogger(__name__)


def build_http_client(settings: ProxySettings, **kwargs: Any) -> httpx.AsyncClient:
    """One shared client per process; pass transport=... in tests."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.upstream_timeout_sec),
        headers={"Accept": "application/json", "User-Agent": settings.user_agent},
        **kwargs,
    )


class MarketDataClient:
    def __init__(self, http: httpx.AsyncClient, settings: ProxySettings):
        self._http = http
        self._settings = settings

    @staticmethod
    def _failed(err: UpstreamError) -> UpstreamError:
        # metric label is the error code, e.g. result="upstream_timeout"
        UPSTREAM_FETCHES.labels(source=err.source, result=err.code.value.lower()).inc()
        return err

    async def _get(self, source: str, url: str) -> httpx.Response:
        with timer_ms() as elapsed:
            try:
                r = await self._http.get(url)
            except httpx.TimeoutException as e:
                raise self._failed(UpstreamTimeout(source, str(e) or "timed out")) from e
            except httpx.RequestError as e:
                raise self._failed(UpstreamUnavailable(source, f"network error: {e}")) from e
        UPSTREAM_LATENCY.labels(source=source).observe(elapsed() / 1000.0)

        if not r.is_success:
            raise self._failed(UpstreamStatusError(source, r.status_code))
        return r

    async def _get_json(self, source: str, url: str) -> Any:
        r = await self._get(source, url)
        try:
            return r.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise self._failed(MalformedPayload(source, f"invalid JSON: {e}")) from e

    async def fetch_price(self) -> BitcoinQuote:
        body = await self._get_json("price", self._settings.price_url)
        quote = self._validated("price", parse_price, body)
        logger.debug("price ok usd=%s lkr=%s", quote.usd, quote.lkr)
        return quote

    async def fetch_mempool(self) -> MempoolStats:
        body = await self._get_json("mempool", self._settings.mempool_url)
        return self._validated("mempool", parse_mempool, body)

    async def fetch_block_height(self) -> int:
        r = await self._get("block_height", self._settings.block_height_url)
        return self._validated("block_height", parse_block_height, r.text)

    def _validated(self, source: str, parser, body: Any):
        try:
            out = parser(body, source)
        except MalformedPayload as e:
            raise self._failed(e) from None
        UPSTREAM_FETCHES.labels(source=source, result="ok").inc()
        return out

