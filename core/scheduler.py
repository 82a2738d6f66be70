"""
Probe scheduler: one long-lived task per endpoint plus auxiliary tasks.

Provides start/stop lifecycle management for everything that runs on the
event loop.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING

from core.probe_task import ProbeTask

if TYPE_CHECKING:
    from core.background_task import BackgroundTask
    from core.endpoint_registry import EndpointRegistry
    from core.probe_task import Prober
    from metrics_store import MetricsStore


class ProbeScheduler:
    """Owns the probe tasks for a fixed endpoint registry."""

    def __init__(
        self,
        registry: EndpointRegistry,
        store: MetricsStore,
        prober: Prober,
        *,
        interval: float,
        timeout: float,
        start_jitter: float = 0.0,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        if len(store) != len(registry):
            raise ValueError("metrics store was not built from this registry")
        self.stop_event = stop_event or asyncio.Event()
        self.probe_tasks: list[ProbeTask] = [
            ProbeTask(
                endpoint=endpoint,
                prober=prober,
                store=store,
                timeout=timeout,
                interval=interval,
                initial_delay=random.uniform(0, start_jitter) if start_jitter > 0 else 0.0,
                stop_event=self.stop_event,
            )
            for endpoint in registry
        ]
        self._extra: list[BackgroundTask] = []
        self._running: list[asyncio.Task] = []

    def register(self, task: BackgroundTask) -> None:
        """Register an auxiliary background task sharing the scheduler's lifecycle."""
        self._extra.append(task)

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._running)

    def start(self) -> list[asyncio.Task]:
        """Create one asyncio.Task per endpoint (and per auxiliary task)."""
        if self._running:
            raise RuntimeError("scheduler already started")
        tasks = [*self.probe_tasks, *self._extra]
        self._running = [
            asyncio.create_task(task.run(), name=task.name)
            for task in tasks
            if task.enabled
        ]
        logging.info(
            f"Started {len(self.probe_tasks)} probe tasks"
            + (f" and {len(self._running) - len(self.probe_tasks)} auxiliary tasks" if self._extra else "")
        )
        return list(self._running)

    async def stop(self, timeout: float = 5.0) -> None:
        """Signal all tasks to stop, cancel them and wait for completion."""
        self.stop_event.set()
        for task in self._running:
            if not task.done():
                task.cancel()

        if self._running:
            try:
                await asyncio.wait_for(
                    asyncio.gather(*self._running, return_exceptions=True),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                logging.warning("Some background tasks did not terminate in time")

        self._running.clear()
