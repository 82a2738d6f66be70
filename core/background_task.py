"""
Abstract base class for periodic background tasks.

Provides the shared setup / execute / sleep loop used by the per-endpoint
probe tasks and the system metrics refresher.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Any, Callable


class BackgroundTask(ABC):
    """Base class for all background tasks.

    Subclasses implement ``execute()`` with their single-iteration logic.
    ``run()`` waits ``initial_delay``, then alternates ``execute()`` and an
    ``interval`` sleep until ``stop_event`` is set or the task is cancelled.
    The next sleep only starts once ``execute()`` has returned, so iterations
    of one task never overlap.
    """

    def __init__(
        self,
        *,
        name: str,
        interval: float,
        stop_event: asyncio.Event,
        enabled: bool = True,
        initial_delay: float = 0.0,
        executor: Executor | None = None,
    ) -> None:
        self.name = name
        self.interval = interval
        self.enabled = enabled
        self.initial_delay = initial_delay
        self.stop_event = stop_event
        self.executor = executor

    # ── helpers available to subclasses ──────────────────────────────────

    async def run_blocking(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a blocking function in the executor (default loop executor if None)."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.executor,
            lambda: func(*args, **kwargs),
        )

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, returning early if the task is stopped."""
        if delay <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    # ── lifecycle ────────────────────────────────────────────────────────

    @abstractmethod
    async def execute(self) -> None:
        """Single iteration of the task, implemented by subclasses."""

    async def setup(self) -> None:
        """Optional one-time setup before the loop starts."""

    async def run(self) -> None:
        """Main loop: setup → delay → (execute → sleep) until stopped."""
        if not self.enabled:
            return

        await self.setup()
        await self.sleep(self.initial_delay)

        while not self.stop_event.is_set():
            try:
                await self.execute()
            except Exception as exc:
                logging.error(f"{self.name} failed: {exc}")
            if self.stop_event.is_set():
                break
            await self.sleep(self.interval)
