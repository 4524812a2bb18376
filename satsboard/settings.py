# satsboard/settings.py
# Purpose: Tunables for the proxy and the terminal client, read from the environment.
# Pitfalls: Values are read once at construction; tests build their own instances.

from __future__ import annotations

import os
from dataclasses import dataclass, field

_ENV_PREFIX = "SATSBOARD_"

PRICE_URL = (
    "https://api.coingecko.com/api/v3/simple/price"
    "?ids=bitcoin&vs_currencies=usd,lkr&include_24hr_change=true"
)
MEMPOOL_URL = "https://mempool.space/api/mempool"
BLOCK_HEIGHT_URL = "https://mempool.space/api/blocks/tip/height"
STREAM_URL = "wss://stream.binance.com:9443/ws/btcusdt@ticker"
USER_AGENT = "BitcoinDeepa-Screensaver/1.0"


def _env(name: str, default: str) -> str:
    return os.getenv(_ENV_PREFIX + name, default)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(_ENV_PREFIX + name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class ProxySettings:
    cache_ttl_sec: float = field(default_factory=lambda: float(_env("CACHE_TTL_SEC", "180")))
    upstream_timeout_sec: float = field(
        default_factory=lambda: float(_env("UPSTREAM_TIMEOUT_SEC", "10"))
    )
    # False keeps the hardcoded fallback on primary failure, even with a cached entry
    serve_stale_on_error: bool = field(
        default_factory=lambda: _env_bool("SERVE_STALE_ON_ERROR", False)
    )
    single_flight: bool = field(default_factory=lambda: _env_bool("SINGLE_FLIGHT", True))
    price_url: str = field(default_factory=lambda: _env("PRICE_URL", PRICE_URL))
    mempool_url: str = field(default_factory=lambda: _env("MEMPOOL_URL", MEMPOOL_URL))
    block_height_url: str = field(
        default_factory=lambda: _env("BLOCK_HEIGHT_URL", BLOCK_HEIGHT_URL)
    )
    user_agent: str = USER_AGENT


@dataclass(frozen=True)
class ClientSettings:
    proxy_url: str = field(
        default_factory=lambda: _env("PROXY_URL", "http://127.0.0.1:8000/snapshot")
    )
    stream_url: str = field(default_factory=lambda: _env("STREAM_URL", STREAM_URL))
    poll_interval_sec: float = field(
        default_factory=lambda: float(_env("POLL_INTERVAL_SEC", "1"))
    )
    fetch_probability: float = field(
        default_factory=lambda: float(_env("FETCH_PROBABILITY", "0.03"))
    )
    highlight_ms: int = field(default_factory=lambda: int(_env("HIGHLIGHT_MS", "600")))
    reconnect_delay_sec: float = field(
        default_factory=lambda: float(_env("RECONNECT_DELAY_SEC", "5"))
    )
    # LKR per USD; only the stream variant converts, the proxy reports LKR directly
    usd_to_lkr: float = field(default_factory=lambda: float(_env("USD_TO_LKR", "303")))
    request_timeout_sec: float = field(
        default_factory=lambda: float(_env("REQUEST_TIMEOUT_SEC", "10"))
    )

    @property
    def highlight_sec(self) -> float:
        return self.highlight_ms / 1000.0
