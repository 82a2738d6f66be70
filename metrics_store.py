"""Metrics store - per-endpoint probe counters and latency histograms."""
from __future__ import annotations

import math
import threading
from bisect import bisect_left
from dataclasses import dataclass
from typing import Iterable, Sequence, TYPE_CHECKING

from core.probe_outcome import ProbeOutcome, ProbeSuccess

if TYPE_CHECKING:
    from core.endpoint_registry import Endpoint, EndpointRegistry


@dataclass(frozen=True)
class EndpointMetricsSnapshot:
    """Immutable, internally consistent view of one endpoint's metrics."""
    endpoint: Endpoint
    success_count: int
    fail_count: int
    buckets: tuple[tuple[float, int], ...]  # (upper_bound, cumulative_count), last bound is +Inf
    latency_sum: float
    latency_count: int

    @property
    def total(self) -> int:
        return self.success_count + self.fail_count


class EndpointMetrics:
    """
    Mutable aggregate for a single endpoint.

    Written only by that endpoint's probe task, read by scrapes. A per-endpoint
    lock makes each update visible to readers all at once.
    """

    def __init__(self, endpoint: Endpoint, bounds: Sequence[float]) -> None:
        self.endpoint = endpoint
        self._bounds = tuple(bounds)
        # One slot per finite bound plus the +Inf overflow slot
        self._bucket_counts = [0] * (len(self._bounds) + 1)
        self._success = 0
        self._fail = 0
        self._sum = 0.0
        self._lock = threading.Lock()

    def observe(self, outcome: ProbeOutcome) -> None:
        if isinstance(outcome, ProbeSuccess):
            latency = max(0.0, float(outcome.latency))
            # Smallest bound >= latency
            slot = bisect_left(self._bounds, latency)
            with self._lock:
                self._success += 1
                self._bucket_counts[slot] += 1
                self._sum += latency
        else:
            with self._lock:
                self._fail += 1

    def snapshot(self) -> EndpointMetricsSnapshot:
        with self._lock:
            success = self._success
            fail = self._fail
            counts = list(self._bucket_counts)
            latency_sum = self._sum

        buckets: list[tuple[float, int]] = []
        cumulative = 0
        for bound, count in zip(self._bounds + (math.inf,), counts):
            cumulative += count
            buckets.append((bound, cumulative))

        return EndpointMetricsSnapshot(
            endpoint=self.endpoint,
            success_count=success,
            fail_count=fail,
            buckets=tuple(buckets),
            latency_sum=latency_sum,
            latency_count=success,
        )


def validate_bounds(bounds: Iterable[float]) -> tuple[float, ...]:
    """Return bucket bounds as a tuple, rejecting empty/non-ascending/non-positive input."""
    result = tuple(float(b) for b in bounds)
    if not result:
        raise ValueError("at least one latency bucket bound is required")
    for bound in result:
        if not bound > 0 or math.isinf(bound):
            raise ValueError(f"latency bucket bounds must be positive and finite, got {bound}")
    for lower, upper in zip(result, result[1:]):
        if upper <= lower:
            raise ValueError(f"latency bucket bounds must be strictly ascending ({lower} >= {upper})")
    return result


class MetricsStore:
    """
    Holds one EndpointMetrics slot per registry endpoint.

    Slots are created zeroed at construction and indexed by ``Endpoint.index``;
    no slot is ever added or removed afterwards. There is no store-wide lock.
    """

    def __init__(self, registry: EndpointRegistry, bounds: Iterable[float]) -> None:
        self.bounds = validate_bounds(bounds)
        self._slots: tuple[EndpointMetrics, ...] = tuple(
            EndpointMetrics(endpoint, self.bounds) for endpoint in registry
        )

    def __len__(self) -> int:
        return len(self._slots)

    def _slot(self, endpoint_index: int) -> EndpointMetrics:
        if not 0 <= endpoint_index < len(self._slots):
            raise KeyError(f"unknown endpoint index {endpoint_index}")
        return self._slots[endpoint_index]

    def record(self, endpoint_index: int, outcome: ProbeOutcome) -> None:
        """Apply one probe outcome atomically to that endpoint's aggregate."""
        self._slot(endpoint_index).observe(outcome)

    def snapshot_endpoint(self, endpoint_index: int) -> EndpointMetricsSnapshot:
        return self._slot(endpoint_index).snapshot()

    def snapshot(self) -> tuple[EndpointMetricsSnapshot, ...]:
        """Consistent per endpoint; endpoints are read one after another."""
        return tuple(slot.snapshot() for slot in self._slots)
