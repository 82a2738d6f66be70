"""
Core probing engine.

- Endpoint / EndpointRegistry: the fixed, validated set of probe targets
- ProbeSuccess / ProbeFailure: the two possible outcomes of one probe
- BackgroundTask: shared setup/execute/sleep loop
- ProbeTask: periodic probe of a single endpoint
- ProbeScheduler: one ProbeTask per endpoint, start/stop lifecycle
- SystemMetricsTask: host gauges refresher
"""

from .endpoint_registry import Endpoint, EndpointConfigError, EndpointRegistry
from .probe_outcome import FailureReason, ProbeFailure, ProbeOutcome, ProbeSuccess

# Background task infrastructure
from .background_task import BackgroundTask
from .probe_task import ProbeTask, Prober
from .scheduler import ProbeScheduler
from .system_metrics_task import SystemMetricsTask

__all__ = [
    "Endpoint",
    "EndpointConfigError",
    "EndpointRegistry",
    "FailureReason",
    "ProbeFailure",
    "ProbeOutcome",
    "ProbeSuccess",
    # Background task infrastructure
    "BackgroundTask",
    "ProbeTask",
    "Prober",
    "ProbeScheduler",
    "SystemMetricsTask",
]
