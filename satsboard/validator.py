from __future__ import annotations

import math
from typing import Any

from satsboard.errors import MalformedPayload
from satsboard.schemas import BitcoinQuote, MempoolStats

# Each parser returns a validated model or raises MalformedPayload.


def _number(value: Any, source: str, name: str) -> int | float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise MalformedPayload(source, f"{name} is not a number: {value!r}")
    if math.isnan(value) or math.isinf(value):
        raise MalformedPayload(source, f"{name} is not finite")
    # ints stay ints so the JSON we serve matches what upstream sent
    return value


def _count(value: Any, source: str, name: str) -> int:
    out = _number(value, source, name)
    if out < 0 or out != int(out):
        raise MalformedPayload(source, f"{name} is not a non-negative integer: {value!r}")
    return int(out)


def parse_price(payload: Any, source: str = "price") -> BitcoinQuote:
    """Validate a CoinGecko simple/price body: {"bitcoin": {"usd", "lkr", "usd_24h_change"}}."""
    if not isinstance(payload, dict) or not isinstance(payload.get("bitcoin"), dict):
        raise MalformedPayload(source, "missing 'bitcoin' object")
    btc = payload["bitcoin"]
    for k in ("usd", "lkr"):
        if k not in btc:
            raise MalformedPayload(source, f"missing bitcoin.{k}")

    usd = _number(btc["usd"], source, "usd")
    lkr = _number(btc["lkr"], source, "lkr")
    if usd <= 0 or lkr <= 0:
        raise MalformedPayload(source, "non-positive price")

    # CoinGecko sometimes omits or nulls the change; treat as flat
    change_raw = btc.get("usd_24h_change")
    change = 0 if change_raw is None else _number(change_raw, source, "usd_24h_change")

    return BitcoinQuote(usd=usd, lkr=lkr, usd_24h_change=change)


def parse_mempool(payload: Any, source: str = "mempool") -> MempoolStats:
    """Validate a mempool.space /api/mempool body; extra keys are ignored."""
    if not isinstance(payload, dict):
        raise MalformedPayload(source, "expected an object")
    for k in ("count", "vsize"):
        if k not in payload:
            raise MalformedPayload(source, f"missing {k}")
    return MempoolStats(
        count=_count(payload["count"], source, "count"),
        vsize=_count(payload["vsize"], source, "vsize"),
    )


def parse_block_height(payload: Any, source: str = "block_height") -> int:
    """The tip-height endpoint answers with a bare integer."""
    if isinstance(payload, str):
        try:
            payload = int(payload.strip())
        except ValueError:
            raise MalformedPayload(source, f"not an integer: {payload!r}") from None
    return _count(payload, source, "height")
