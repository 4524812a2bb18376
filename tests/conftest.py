from __future__ import annotations

import json
from collections import Counter

import httpx
import pytest

from satsboard.settings import ProxySettings

PRICE_URL = "https://prices.test/simple/price"
MEMPOOL_URL = "https://mempool.test/api/mempool"
HEIGHT_URL = "https://mempool.test/api/blocks/tip/height"

PRICE_BODY = {"bitcoin": {"usd": 98500, "lkr": 29850000, "usd_24h_change": 2.5}}
MEMPOOL_BODY = {"count": 15000, "vsize": 8500000, "total_fee": 1234567}
HEIGHT_BODY = "875000"


class FakeUpstream:
    """Routes by URL; each route is (status, body). Counts hits per path."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, object]] = {
            PRICE_URL: (200, PRICE_BODY),
            MEMPOOL_URL: (200, MEMPOOL_BODY),
            HEIGHT_URL: (200, HEIGHT_BODY),
        }
        self.errors: dict[str, Exception] = {}
        self.hits: Counter[str] = Counter()

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.hits[url] += 1
        if url in self.errors:
            raise self.errors[url]
        status, body = self.routes[url]
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, content=json.dumps(body).encode())

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def total(self) -> int:
        return sum(self.hits.values())


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def proxy_settings() -> ProxySettings:
    return ProxySettings(
        cache_ttl_sec=180,
        upstream_timeout_sec=5,
        serve_stale_on_error=False,
        single_flight=True,
        price_url=PRICE_URL,
        mempool_url=MEMPOOL_URL,
        block_height_url=HEIGHT_URL,
    )
