"""Per-endpoint probe task."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, TYPE_CHECKING

from core.background_task import BackgroundTask
from core.probe_outcome import FailureReason, ProbeFailure, ProbeOutcome, ProbeSuccess

if TYPE_CHECKING:
    from core.endpoint_registry import Endpoint
    from metrics_store import MetricsStore


class Prober(Protocol):
    """Anything that can run one reachability check against an endpoint."""

    async def probe(self, endpoint: Endpoint, timeout: float) -> ProbeOutcome:
        ...


class ProbeTask(BackgroundTask):
    """Probe one endpoint every ``interval`` seconds and record the outcome.

    Each tick is bounded by ``timeout``; a prober that overruns it is
    cancelled and the tick counts as a single failure.
    """

    def __init__(
        self,
        *,
        endpoint: Endpoint,
        prober: Prober,
        store: MetricsStore,
        timeout: float,
        **kw,
    ) -> None:
        super().__init__(name=f"probe[{endpoint.name}/{endpoint.address}]", **kw)
        self.endpoint = endpoint
        self.prober = prober
        self.store = store
        self.timeout = timeout
        self.ticks = 0

    async def probe_once(self) -> ProbeOutcome:
        try:
            return await asyncio.wait_for(
                self.prober.probe(self.endpoint, self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return ProbeFailure(FailureReason.TIMEOUT, f"no reply within {self.timeout}s")
        except Exception as exc:
            return ProbeFailure(FailureReason.TRANSPORT, f"{type(exc).__name__}: {exc}")

    async def execute(self) -> None:
        outcome = await self.probe_once()
        self.store.record(self.endpoint.index, outcome)
        self.ticks += 1

        if isinstance(outcome, ProbeSuccess):
            logging.debug(f"{self.name}: ok in {outcome.latency * 1000:.2f} ms")
        else:
            logging.debug(f"{self.name}: failed ({outcome.reason.value}) {outcome.detail}")
