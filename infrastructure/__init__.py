from __future__ import annotations

"""Infrastructure layer: metrics exposition, HTTP server and subprocesses."""

from .exposition import MetricsExporter, SystemGauges, render_ping_metrics
from .metrics import MetricsServer, start_metrics_server
from .process_manager import ProcessManager

__all__ = [
    # Exposition
    "MetricsExporter",
    "SystemGauges",
    "render_ping_metrics",
    # HTTP
    "MetricsServer",
    "start_metrics_server",
    # Subprocesses
    "ProcessManager",
]
