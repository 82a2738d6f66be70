"""Prometheus text exposition of the metrics store."""

from __future__ import annotations

from typing import Iterable, Mapping, TYPE_CHECKING

from prometheus_client import CollectorRegistry, Gauge, generate_latest
from prometheus_client.utils import floatToGoString

if TYPE_CHECKING:
    from metrics_store import EndpointMetricsSnapshot, MetricsStore


PING_SUCCESS = ("ping_success", "Count of successful pings", "counter")
PING_FAIL = ("ping_fail", "Count of failed pings", "counter")
PING_LATENCY = ("ping_latency", "Ping latency in seconds", "histogram")


def escape_label_value(value: str) -> str:
    return value.replace("\\", r"\\").replace("\n", r"\n").replace('"', r'\"')


def format_labels(labels: Mapping[str, str], extra: tuple[str, str] | None = None) -> str:
    """Render ``{k="v",...}`` with keys sorted; ``extra`` (e.g. ``le``) goes last."""
    parts = [f'{key}="{escape_label_value(labels[key])}"' for key in sorted(labels)]
    if extra is not None:
        parts.append(f'{extra[0]}="{escape_label_value(extra[1])}"')
    return "{" + ",".join(parts) + "}"


def _header(family: tuple[str, str, str]) -> list[str]:
    name, doc, kind = family
    return [f"# HELP {name} {doc}", f"# TYPE {name} {kind}"]


def render_ping_metrics(snapshots: Iterable[EndpointMetricsSnapshot]) -> str:
    """Render the ping_success, ping_fail and ping_latency families.

    Endpoints appear in registry order within each family.
    """
    snapshots = list(snapshots)
    lines: list[str] = []

    lines += _header(PING_SUCCESS)
    for snap in snapshots:
        lines.append(f"{PING_SUCCESS[0]}{format_labels(snap.endpoint.labels)} {snap.success_count}")

    lines += _header(PING_FAIL)
    for snap in snapshots:
        lines.append(f"{PING_FAIL[0]}{format_labels(snap.endpoint.labels)} {snap.fail_count}")

    name = PING_LATENCY[0]
    lines += _header(PING_LATENCY)
    for snap in snapshots:
        labels = snap.endpoint.labels
        for bound, cumulative in snap.buckets:
            lines.append(f"{name}_bucket{format_labels(labels, ('le', floatToGoString(bound)))} {cumulative}")
        lines.append(f"{name}_sum{format_labels(labels)} {floatToGoString(snap.latency_sum)}")
        lines.append(f"{name}_count{format_labels(labels)} {snap.latency_count}")

    return "\n".join(lines) + "\n"


class SystemGauges:
    """Host gauges kept in a private registry (never the global REGISTRY)."""

    def __init__(self) -> None:
        self.registry = CollectorRegistry(auto_describe=True)
        self._gauges = {
            "cpu_cores": Gauge("system_cpu_cores", "Number of CPU cores", registry=self.registry),
            "load_average": Gauge("system_load_average", "System load average", registry=self.registry),
            "memory_total": Gauge("system_memory_total", "Total system memory", registry=self.registry),
        }

    def update(self, values: Mapping[str, float]) -> None:
        for key, value in values.items():
            gauge = self._gauges.get(key)
            if gauge is not None:
                gauge.set(value)

    def render(self) -> str:
        return generate_latest(self.registry).decode("utf-8")


class MetricsExporter:
    """Builds the /metrics response body from a fresh store snapshot."""

    def __init__(self, store: MetricsStore, system_gauges: SystemGauges | None = None) -> None:
        self.store = store
        self.system_gauges = system_gauges

    def render(self) -> bytes:
        body = render_ping_metrics(self.store.snapshot())
        if self.system_gauges is not None:
            body += self.system_gauges.render()
        return body.encode("utf-8")
