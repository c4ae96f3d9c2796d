"""Debounced, periodic recompute of the dashboard snapshot.

Each request to recompute takes the next generation number. After the quiet
period only the newest request goes on to fetch, and a finished compute is
published only if no newer request arrived while it ran, so a slow stale
response never overwrites fresher data.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from .config import settings
from .filters import FilterConfig

logger = logging.getLogger(__name__)

S = TypeVar("S")

Compute = Callable[[FilterConfig], Awaitable[S]]


class RefreshLoop(Generic[S]):
    def __init__(
        self,
        compute: Compute,
        config: FilterConfig | None = None,
        *,
        interval_s: float | None = None,
        debounce_s: float | None = None,
    ) -> None:
        self.compute = compute
        self.config = config or FilterConfig()
        self.interval_s = settings.refresh_interval_s if interval_s is None else interval_s
        self.debounce_s = settings.debounce_s if debounce_s is None else debounce_s
        self.generation = 0
        self.snapshot: S | None = None
        self.snapshot_config: FilterConfig | None = None
        self._task: asyncio.Task | None = None

    async def _run_cycle(self, generation: int, config: FilterConfig) -> bool:
        try:
            result = await self.compute(config)
        except Exception:
            logger.exception("refresh for %s failed, keeping previous snapshot", config)
            return False
        if generation != self.generation:
            logger.info("discarding stale refresh (generation %d < %d)", generation, self.generation)
            return False
        self.snapshot = result
        self.snapshot_config = config
        return True

    async def request(self, config: FilterConfig) -> bool:
        """Switch to ``config`` after the quiet period.

        Returns True when this request's result was published, False when a
        newer request superseded it.
        """
        self.generation += 1
        generation = self.generation
        self.config = config
        await asyncio.sleep(self.debounce_s)
        if generation != self.generation:
            return False
        return await self._run_cycle(generation, config)

    async def refresh(self) -> bool:
        """Recompute the active configuration now."""
        self.generation += 1
        return await self._run_cycle(self.generation, self.config)

    async def run(self) -> None:
        """Refresh on the fixed interval until cancelled."""
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval_s)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
