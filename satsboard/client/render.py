# satsboard/client/render.py
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TextIO

from satsboard.client.animation import ChangeTracker
from satsboard.client.state import DisplayState, to_fixed

HIGHLIGHT = "\x1b[1;33m"
RESET = "\x1b[0m"
CLEAR_SCREEN = "\x1b[H\x1b[2J"
RUPEE = "රු."


def format_locale(value: float) -> str:
    """en-US grouping, at most three fraction digits (toLocaleString default)."""
    s = f"{to_fixed(value, 3):,.3f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s


def format_fixed(value: float, places: int) -> str:
    return f"{to_fixed(value, places):.{places}f}"


def format_change(pct: float) -> str:
    return f"{'+' if pct >= 0 else ''}{format_fixed(pct, 2)}%"


@dataclass(frozen=True)
class Field:
    label: str
    text: Callable[[DisplayState], str]
    prefix: str = ""
    suffix: str = ""


# Order is screen order; every key gets its own ChangeTracker
FIELDS: dict[str, Field] = {
    "btc_price_lkr": Field(
        "Bitcoin Price (LKR)", lambda s: format_locale(s.btc_price_lkr), f"{RUPEE} "
    ),
    "btc_price_usd": Field("Bitcoin Price (USD)", lambda s: format_locale(s.btc_price_usd), "$"),
    "usd_24h_change": Field("24h Change", lambda s: format_change(s.usd_24h_change)),
    "lkr_per_sat": Field(
        "Satoshis ⇄ LKR", lambda s: format_fixed(s.lkr_per_sat, 4), f"1 sat = {RUPEE}"
    ),
    "sats_per_lkr": Field("", lambda s: format_fixed(s.sats_per_lkr, 2), f"{RUPEE}1 = ", " sats"),
    "block_height": Field("Block Height", lambda s: format_locale(s.block_height)),
    "difficulty": Field("Difficulty", lambda s: s.difficulty),
    "mempool": Field("Mempool", lambda s: format_locale(s.mempool)),
    "fees": Field("Fees (sat/vB)", lambda s: str(s.fees)),
}


def formatted(state: DisplayState) -> dict[str, str]:
    return {name: f.text(state) for name, f in FIELDS.items()}


def highlight(text: str, tracker: ChangeTracker | None, color: bool = True) -> str:
    if not color or tracker is None or tracker.marked_from is None:
        return text
    cut = tracker.marked_from
    if cut >= len(text):
        return text
    return f"{text[:cut]}{HIGHLIGHT}{text[cut:]}{RESET}"


def progress_bar(percent: float, width: int = 30) -> str:
    filled = int(round(width * percent / 100))
    return "[" + "#" * filled + "-" * (width - filled) + f"] {format_fixed(percent, 1)}% complete"


class TerminalRenderer:
    """Redraws the whole screen on every call; cheap enough at 1 Hz."""

    def __init__(self, out: TextIO, color: bool = True):
        self._out = out
        self._color = color

    def lines(self, state: DisplayState, trackers: Mapping[str, ChangeTracker]) -> list[str]:
        rows = []
        for name, f in FIELDS.items():
            body = highlight(f.text(state), trackers.get(name), self._color)
            value = f"{f.prefix}{body}{f.suffix}"
            rows.append(f"{f.label:<22}{value}")
            if name == "sats_per_lkr":
                label = f"Progress to 1 sat = {RUPEE}1"
                rows.append(f"{label:<22}{progress_bar(state.progress_to_parity)}")
        return rows

    def render(self, state: DisplayState, trackers: Mapping[str, ChangeTracker]) -> None:
        screen = "\n".join(self.lines(state, trackers))
        prefix = CLEAR_SCREEN if self._color else ""
        self._out.write(prefix + screen + "\n")
        self._out.flush()
