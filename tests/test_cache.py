import asyncio

import httpx
from conftest import HEIGHT_URL, MEMPOOL_URL, PRICE_URL

from satsboard.cache import SnapshotCache
from satsboard.data_client import MarketDataClient
from satsboard.errors import UpstreamUnavailable
from satsboard.schemas import FALLBACK_SNAPSHOT, BitcoinQuote, MempoolStats

EXPECTED = {
    "bitcoin": {"usd": 98500, "lkr": 29850000, "usd_24h_change": 2.5},
    "mempool": {"count": 15000, "vsize": 8500000},
    "blockHeight": 875000,
}


class FakeClock:
    def __init__(self, t: float = 1000.0) -> None:
        self.t = t

    def __call__(self) -> float:
        return self.t


def _cache(upstream, settings, clock=None) -> SnapshotCache:
    return SnapshotCache(
        MarketDataClient(upstream.client(), settings), settings, clock=clock or FakeClock()
    )


def test_scenario_full_refresh(upstream, proxy_settings) -> None:
    snap = asyncio.run(_cache(upstream, proxy_settings).snapshot())
    assert snap.model_dump() == EXPECTED
    assert upstream.total == 3


def test_within_ttl_is_stable_and_quiet(upstream, proxy_settings) -> None:
    clock = FakeClock()
    cache = _cache(upstream, proxy_settings, clock)

    async def go():
        first = await cache.snapshot()
        clock.t += 179.9
        second = await cache.snapshot()
        return first, second

    first, second = asyncio.run(go())
    assert first.model_dump_json() == second.model_dump_json()
    assert upstream.total == 3


def test_expired_entry_refreshes(upstream, proxy_settings) -> None:
    clock = FakeClock()
    cache = _cache(upstream, proxy_settings, clock)

    async def go():
        await cache.snapshot()
        clock.t += 180
        upstream.routes[PRICE_URL] = (
            200,
            {"bitcoin": {"usd": 100000, "lkr": 30300000, "usd_24h_change": -1.0}},
        )
        return await cache.snapshot()

    snap = asyncio.run(go())
    assert snap.bitcoin.usd == 100000
    assert upstream.hits[PRICE_URL] == 2
    assert cache.entry.fetched_at == clock.t


def test_primary_failure_returns_fallback(upstream, proxy_settings) -> None:
    upstream.routes[PRICE_URL] = (500, {"error": "boom"})
    cache = _cache(upstream, proxy_settings)
    snap = asyncio.run(cache.snapshot())
    assert snap == FALLBACK_SNAPSHOT
    assert snap.model_dump() == EXPECTED
    # secondaries are skipped and nothing is cached
    assert upstream.hits[MEMPOOL_URL] == 0
    assert cache.entry is None


def test_primary_failure_ignores_stale_entry_by_default(upstream, proxy_settings) -> None:
    clock = FakeClock()
    cache = _cache(upstream, proxy_settings, clock)
    upstream.routes[PRICE_URL] = (
        200,
        {"bitcoin": {"usd": 50000, "lkr": 15150000, "usd_24h_change": 0}},
    )

    async def go():
        await cache.snapshot()
        clock.t += 500
        upstream.errors[PRICE_URL] = httpx.ConnectError("down")
        return await cache.snapshot()

    assert asyncio.run(go()) == FALLBACK_SNAPSHOT


def test_serve_stale_on_error_opt_in(upstream, proxy_settings) -> None:
    from dataclasses import replace

    settings = replace(proxy_settings, serve_stale_on_error=True)
    clock = FakeClock()
    cache = _cache(upstream, settings, clock)
    upstream.routes[PRICE_URL] = (
        200,
        {"bitcoin": {"usd": 50000, "lkr": 15150000, "usd_24h_change": 0}},
    )

    async def go():
        await cache.snapshot()
        clock.t += 500
        upstream.routes[PRICE_URL] = (503, {})
        return await cache.snapshot()

    assert asyncio.run(go()).bitcoin.usd == 50000


def test_secondary_failures_degrade_per_field(upstream, proxy_settings) -> None:
    upstream.routes[PRICE_URL] = (
        200,
        {"bitcoin": {"usd": 61000, "lkr": 18483000, "usd_24h_change": -3.1}},
    )
    upstream.routes[MEMPOOL_URL] = (502, "bad gateway")
    snap = asyncio.run(_cache(upstream, proxy_settings).snapshot())
    assert snap.bitcoin == BitcoinQuote(usd=61000, lkr=18483000, usd_24h_change=-3.1)
    assert snap.mempool == MempoolStats(count=15000, vsize=8500000)
    assert snap.blockHeight == 875000

    upstream.routes[MEMPOOL_URL] = (200, {"count": 42000, "vsize": 21000000})
    upstream.errors[HEIGHT_URL] = httpx.ReadTimeout("slow")
    snap = asyncio.run(_cache(upstream, proxy_settings).snapshot())
    assert snap.mempool.count == 42000
    assert snap.blockHeight == 875000


class SlowClient:
    """Counts refreshes; yields to the loop so concurrent callers overlap."""

    def __init__(self, fail: bool = False) -> None:
        self.price_calls = 0
        self.fail = fail

    async def fetch_price(self):
        self.price_calls += 1
        await asyncio.sleep(0.01)
        if self.fail:
            raise UpstreamUnavailable("price", "down")
        return BitcoinQuote(usd=1, lkr=303)

    async def fetch_mempool(self):
        return MempoolStats(count=1, vsize=2)

    async def fetch_block_height(self):
        return 3


def test_single_flight_coalesces_concurrent_misses(proxy_settings) -> None:
    client = SlowClient()
    cache = SnapshotCache(client, proxy_settings, clock=FakeClock())

    async def go():
        return await asyncio.gather(*(cache.snapshot() for _ in range(5)))

    results = asyncio.run(go())
    assert client.price_calls == 1
    assert all(r == results[0] for r in results)


def test_without_single_flight_misses_race(proxy_settings) -> None:
    from dataclasses import replace

    client = SlowClient()
    cache = SnapshotCache(client, replace(proxy_settings, single_flight=False), clock=FakeClock())

    async def go():
        return await asyncio.gather(*(cache.snapshot() for _ in range(3)))

    asyncio.run(go())
    assert client.price_calls == 3


def test_failed_flight_is_not_reused(proxy_settings) -> None:
    client = SlowClient(fail=True)
    cache = SnapshotCache(client, proxy_settings, clock=FakeClock())

    async def go():
        first = await cache.snapshot()
        second = await cache.snapshot()
        return first, second

    first, second = asyncio.run(go())
    assert first == second == FALLBACK_SNAPSHOT
    assert client.price_calls == 2


def test_get_and_clear(upstream, proxy_settings) -> None:
    cache = _cache(upstream, proxy_settings)
    assert cache.get() is None
    asyncio.run(cache.refresh())
    assert cache.get() is not None
    cache.clear()
    assert cache.get() is None and cache.age() is None


def test_entry_is_stamped_when_the_refresh_started(proxy_settings) -> None:
    clock = FakeClock(t=1000.0)

    class LaggingClient(SlowClient):
        async def fetch_price(self):
            clock.t += 8.0  # upstream took 8 s
            return await super().fetch_price()

    cache = SnapshotCache(LaggingClient(), proxy_settings, clock=clock)
    asyncio.run(cache.refresh())
    assert cache.entry.fetched_at == 1000.0
    assert cache.age() == 8.0

    # the TTL window runs from the request start, not from when the fetch returned
    clock.t = 1000.0 + 180
    assert cache.get() is None
