# satsboard/client/state.py
# Purpose: What the dashboard shows, plus the previous frame for change highlighting.
# Pitfalls: Derived ratios must be recomputed whenever a price changes; use with_prices().

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Context, Decimal

from satsboard.schemas import MarketSnapshot

SATS_PER_BTC = 100_000_000

# enough digits for any finite double at 4 dp; the default 28 makes quantize raise
_EXACT = Context(prec=400)


def to_fixed(value: float, places: int) -> Decimal:
    """
    Round like JavaScript's Number.prototype.toFixed: half-up on the exact
    binary value. round() would send exact ties such as 0.125 to even.
    """
    return Decimal(value).quantize(
        Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP, context=_EXACT
    )


def sats_per_unit(price: float) -> float:
    """Satoshis bought by one unit of the local currency, 2 dp."""
    return float(to_fixed(SATS_PER_BTC / price, 2))


def unit_per_sat(price: float) -> float:
    """Local currency value of one satoshi, 4 dp."""
    return float(to_fixed(price / SATS_PER_BTC, 4))


@dataclass(frozen=True)
class DisplayState:
    btc_price_lkr: float = 29_850_000
    btc_price_usd: float = 98_500
    usd_24h_change: float = 0.0
    sats_per_lkr: float = 3.35
    lkr_per_sat: float = 0.299
    block_height: int = 875_432
    mempool: int = 15_234
    # not served by the proxy; shown as static values
    difficulty: str = "109.78T"
    fees: int = 12

    @property
    def progress_to_parity(self) -> float:
        """Percent of the way to 1 sat = 1 LKR."""
        return min(100.0, self.lkr_per_sat * 100)

    def with_prices(
        self, lkr: float, usd: float, usd_24h_change: float | None = None
    ) -> DisplayState:
        changes = {
            "btc_price_lkr": lkr,
            "btc_price_usd": usd,
            "sats_per_lkr": sats_per_unit(lkr),
            "lkr_per_sat": unit_per_sat(lkr),
        }
        if usd_24h_change is not None:
            changes["usd_24h_change"] = usd_24h_change
        return replace(self, **changes)

    def merge_snapshot(self, snap: MarketSnapshot) -> DisplayState:
        """Take every field the proxy serves; keep the display-only ones."""
        merged = self.with_prices(
            lkr=snap.bitcoin.lkr,
            usd=snap.bitcoin.usd,
            usd_24h_change=snap.bitcoin.usd_24h_change,
        )
        return replace(merged, block_height=snap.blockHeight, mempool=snap.mempool.count)


class DisplayHistory:
    """The (previous, current) pair; each advance moves exactly one generation."""

    def __init__(self, initial: DisplayState | None = None):
        self.current = initial or DisplayState()
        self.previous = self.current
        self.generation = 0

    def advance(self, new: DisplayState) -> tuple[DisplayState, DisplayState]:
        self.previous, self.current = self.current, new
        self.generation += 1
        return self.previous, self.current
