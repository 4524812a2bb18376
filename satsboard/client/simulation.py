# satsboard/client/simulation.py
# Purpose: Bounded noise that keeps the display moving between real updates.
# Pitfalls: Purely cosmetic; never feed simulated values back to the proxy.

from __future__ import annotations

import math
import random
from dataclasses import replace
from typing import Protocol

from satsboard.client.state import DisplayState

PRICE_JITTER = 0.001  # full band; ±0.05% of the current value
MEMPOOL_JITTER = 100  # full band; integer step in [-50, 50)
MEMPOOL_FLOOR = 1000
BLOCK_PROBABILITY = 0.01


class Simulator(Protocol):
    def jitter_price(self, value: float) -> float: ...

    def nudge_mempool(self, count: int) -> int: ...

    def block_found(self) -> bool: ...


class NoiseSimulator:
    """Random walk used by the live client."""

    def __init__(
        self, rng: random.Random | None = None, block_probability: float = BLOCK_PROBABILITY
    ):
        self._rng = rng or random.Random()
        self._block_probability = block_probability

    def jitter_price(self, value: float) -> float:
        return value + (self._rng.random() - 0.5) * (value * PRICE_JITTER)

    def nudge_mempool(self, count: int) -> int:
        step = math.floor((self._rng.random() - 0.5) * MEMPOOL_JITTER)
        return max(MEMPOOL_FLOOR, count + step)

    def block_found(self) -> bool:
        return self._rng.random() < self._block_probability


class StillSimulator:
    """Deterministic mode: no noise at all."""

    def jitter_price(self, value: float) -> float:
        return value

    def nudge_mempool(self, count: int) -> int:
        return count

    def block_found(self) -> bool:
        return False


def drift(state: DisplayState, sim: Simulator) -> DisplayState:
    """One between-fetch tick of the poll variant: jitter prices, nudge mempool."""
    moved = state.with_prices(
        lkr=sim.jitter_price(state.btc_price_lkr),
        usd=sim.jitter_price(state.btc_price_usd),
    )
    return replace(moved, mempool=sim.nudge_mempool(state.mempool))
