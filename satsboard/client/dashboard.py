# satsboard/client/dashboard.py
from __future__ import annotations

import asyncio
import contextlib
import logging

from satsboard.client.animation import ChangeTracker
from satsboard.client.render import FIELDS, TerminalRenderer, formatted
from satsboard.client.state import DisplayHistory, DisplayState

logger = logging.getLogger(__name__)


class Dashboard:
    """
    Owns display state, per-field highlight trackers and the refresh task.

    Use as `async with Dashboard(...) as d: await d.wait()`; leaving the block
    cancels the refresher (and with it any reconnect schedule), releases its
    resources and stops every pending highlight timer.
    """

    def __init__(
        self,
        refresher,
        renderer: TerminalRenderer | None = None,
        highlight_sec: float = 0.6,
        initial: DisplayState | None = None,
    ):
        self._refresher = refresher
        self._renderer = renderer
        self.history = DisplayHistory(initial)
        self.trackers = {
            name: ChangeTracker(name, highlight_sec, on_clear=self._on_clear) for name in FIELDS
        }
        self._task: asyncio.Task | None = None

    @property
    def current(self) -> DisplayState:
        return self.history.current

    def apply(self, new: DisplayState) -> None:
        old_text = formatted(self.history.current)
        self.history.advance(new)
        new_text = formatted(new)
        for name, tracker in self.trackers.items():
            tracker.update(old_text[name], new_text[name])
        self.render()

    def render(self) -> None:
        if self._renderer is not None:
            self._renderer.render(self.history.current, self.trackers)

    def _on_clear(self, name: str) -> None:
        self.render()

    async def __aenter__(self) -> Dashboard:
        self.render()
        self._task = asyncio.create_task(self._refresher.run(self), name="satsboard-refresh")
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        for tracker in self.trackers.values():
            tracker.close()
        await self._refresher.aclose()
        logger.info("dashboard closed after %d updates", self.history.generation)
