# satsboard/client/animation.py
# Purpose: Per-field "flowing digit" highlight: mark every character from the
#          first divergence between old and new text, clear after a fixed time.

from __future__ import annotations

import asyncio
from collections.abc import Callable


def first_divergence(old: str, new: str) -> int | None:
    """
    Index of the first differing character, None when the strings are equal.
    If one string is a prefix of the other, divergence is at the shorter length.
    """
    if old == new:
        return None
    for i, (a, b) in enumerate(zip(old, new)):
        if a != b:
            return i
    return min(len(old), len(new))


class ChangeTracker:
    """
    One field's highlight. update() restarts the clear timer, so a value that
    changes every tick stays highlighted from its latest divergence point.
    Needs a running event loop for the timer.
    """

    def __init__(
        self,
        name: str,
        duration_sec: float = 0.6,
        on_clear: Callable[[str], None] | None = None,
    ):
        self.name = name
        self.duration_sec = duration_sec
        self.marked_from: int | None = None
        self._on_clear = on_clear
        self._timer: asyncio.TimerHandle | None = None

    def update(self, old: str, new: str) -> int | None:
        idx = first_divergence(old, new)
        if idx is None:
            return None
        self._cancel_timer()
        self.marked_from = idx
        self._timer = asyncio.get_running_loop().call_later(self.duration_sec, self._clear)
        return idx

    def is_changed(self, index: int) -> bool:
        return self.marked_from is not None and index >= self.marked_from

    def close(self) -> None:
        self._cancel_timer()
        self.marked_from = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _clear(self) -> None:
        self._timer = None
        self.marked_from = None
        if self._on_clear is not None:
            self._on_clear(self.name)
