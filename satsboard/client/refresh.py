"""
Refresh strategies for the terminal dashboard.

PollingRefresher
  Every poll interval: with probability `fetch_probability` GET the proxy and
  merge the snapshot, otherwise drift the prices a little. At the defaults
  (1 s, 0.03) that is one real request every ~33 s but a redraw every second.

StreamingRefresher
  Subscribes to a ticker websocket (Binance 24hr ticker: "c" last price,
  "P" 24h change %) and derives the LKR price with a fixed rate. Reconnects
  after a fixed delay, forever; cancelling the task ends the retry loop.

Both talk to a StateSink: `.current` to read, `.apply(new)` to publish.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import random
from dataclasses import replace
from typing import Any, Protocol

import httpx
import pydantic
import websockets
from websockets.exceptions import WebSocketException

from satsboard.client.simulation import Simulator, drift
from satsboard.client.state import DisplayState
from satsboard.schemas import MarketSnapshot
from satsboard.settings import ClientSettings

logger = logging.getLogger(__name__)


class StateSink(Protocol):
    @property
    def current(self) -> DisplayState: ...

    def apply(self, new: DisplayState) -> None: ...


class PollingRefresher:
    def __init__(
        self,
        settings: ClientSettings,
        http: httpx.AsyncClient,
        simulator: Simulator,
        rng: random.Random | None = None,
        sleep=asyncio.sleep,
    ):
        self._settings = settings
        self._http = http
        self._sim = simulator
        self._rng = rng or random.Random()
        self._sleep = sleep

    async def fetch_snapshot(self) -> MarketSnapshot | None:
        """GET the proxy; None (logged) on any failure so the display keeps going."""
        try:
            r = await self._http.get(self._settings.proxy_url)
            r.raise_for_status()
            return MarketSnapshot.model_validate(r.json())
        except httpx.HTTPError as e:
            logger.warning("proxy fetch failed: %s", e)
        except (json.JSONDecodeError, pydantic.ValidationError) as e:
            logger.warning("proxy returned an unusable body: %s", e)
        return None

    async def fetch_into(self, sink: StateSink) -> bool:
        snap = await self.fetch_snapshot()
        if snap is None:
            return False
        sink.apply(sink.current.merge_snapshot(snap))
        return True

    async def tick(self, sink: StateSink) -> None:
        if self._rng.random() < self._settings.fetch_probability:
            await self.fetch_into(sink)
        else:
            sink.apply(drift(sink.current, self._sim))

    async def run(self, sink: StateSink) -> None:
        # Real data first, then the sampled loop
        await self.fetch_into(sink)
        while True:
            await self._sleep(self._settings.poll_interval_sec)
            await self.tick(sink)

    async def aclose(self) -> None:
        await self._http.aclose()


def parse_ticker(raw: str | bytes) -> tuple[float, float]:
    """Return (last price USD, 24h change %) from a ticker frame."""
    msg: Any = json.loads(raw)
    if not isinstance(msg, dict):
        raise ValueError(f"unexpected frame: {msg!r}")
    price = float(msg["c"])
    change = float(msg["P"])
    if not (math.isfinite(price) and math.isfinite(change)):
        raise ValueError(f"non-finite value: c={price} P={change}")
    if price <= 0:
        raise ValueError(f"non-positive price: {price}")
    return price, change


class StreamingRefresher:
    def __init__(
        self,
        settings: ClientSettings,
        simulator: Simulator,
        connect=websockets.connect,
        sleep=asyncio.sleep,
    ):
        self._settings = settings
        self._sim = simulator
        self._connect = connect
        self._sleep = sleep
        self.connects = 0

    def on_message(self, sink: StateSink, raw: str | bytes) -> bool:
        try:
            price, change = parse_ticker(raw)
        except (ValueError, KeyError, TypeError) as e:
            # bad frame: keep the current state for this message only
            logger.warning("dropping ticker frame: %s", e)
            return False

        lkr = price * self._settings.usd_to_lkr
        if not math.isfinite(lkr):
            logger.warning("dropping ticker frame: LKR price overflows (%s)", price)
            return False

        cur = sink.current
        new = cur.with_prices(lkr=lkr, usd=price, usd_24h_change=change)
        height = cur.block_height + 1 if self._sim.block_found() else cur.block_height
        sink.apply(
            replace(new, mempool=self._sim.nudge_mempool(cur.mempool), block_height=height)
        )
        return True

    async def run(self, sink: StateSink) -> None:
        url = self._settings.stream_url
        while True:
            self.connects += 1
            try:
                async with self._connect(url) as ws:
                    logger.info("ticker stream connected: %s", url)
                    async for raw in ws:
                        self.on_message(sink, raw)
                logger.info("ticker stream closed")
            except (OSError, WebSocketException, asyncio.TimeoutError) as e:
                logger.warning("ticker stream dropped: %s", e)
            # fixed delay, no cap; CancelledError from here ends the loop
            await self._sleep(self._settings.reconnect_delay_sec)

    async def aclose(self) -> None:
        # the socket is owned by run(); cancelling its task closes it
        return None
