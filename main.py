from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any

from rich.console import Console

from config import (
    CONFIG_FILE,
    ENABLE_SYSTEM_METRICS,
    LATENCY_BUCKETS,
    METRICS_ADDR,
    METRICS_PATH,
    METRICS_PORT,
    PROBE_INTERVAL,
    PROBE_START_JITTER,
    PROBE_TIMEOUT,
    SHUTDOWN_TIMEOUT_SECONDS,
    SYSTEM_METRICS_INTERVAL,
)
from config.endpoints import load_endpoints
from core import EndpointRegistry, ProbeScheduler, SystemMetricsTask
from infrastructure import MetricsExporter, MetricsServer, ProcessManager, SystemGauges
from metrics_store import MetricsStore
from services import PingService


class ExporterApp:
    """Wires registry, store, probe scheduler and metrics server together."""

    def __init__(self, config_file: str = CONFIG_FILE, console: Console | None = None) -> None:
        self.config_file = config_file
        self.console = console or Console(stderr=True)
        self.stop_event: asyncio.Event | None = None

        # Built by setup(); raises EndpointConfigError on bad config
        self.registry: EndpointRegistry | None = None
        self.store: MetricsStore | None = None
        self.exporter: MetricsExporter | None = None

    def setup(self) -> None:
        """Load and validate endpoints, create the metrics store. Fails fast."""
        descriptors = load_endpoints(self.config_file)
        self.registry = EndpointRegistry(descriptors)
        self.store = MetricsStore(self.registry, LATENCY_BUCKETS)
        self.exporter = MetricsExporter(
            self.store,
            SystemGauges() if ENABLE_SYSTEM_METRICS else None,
        )
        logging.info(f"Loaded {len(self.registry)} endpoints from {self.config_file}")

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        assert self.stop_event is not None
        stop_event = self.stop_event

        def _request_stop(*_: Any) -> None:
            logging.info("Shutdown requested")
            loop.call_soon_threadsafe(stop_event.set)

        for sig_name in ("SIGINT", "SIGTERM"):
            sig = getattr(signal, sig_name, None)
            if sig is None:
                continue
            try:
                loop.add_signal_handler(sig, _request_stop)
            except NotImplementedError:
                # Windows event loops do not support add_signal_handler
                signal.signal(sig, _request_stop)

    async def run(self) -> None:
        if self.registry is None:
            self.setup()
        assert self.registry is not None and self.store is not None and self.exporter is not None

        loop = asyncio.get_running_loop()
        self.stop_event = asyncio.Event()
        self._install_signal_handlers(loop)

        # One slot per endpoint: at most one outstanding probe each
        process_manager = ProcessManager(max_concurrent=len(self.registry))
        ping_service = PingService(process_manager, dns_workers=len(self.registry))
        scheduler = ProbeScheduler(
            self.registry,
            self.store,
            ping_service,
            interval=PROBE_INTERVAL,
            timeout=PROBE_TIMEOUT,
            start_jitter=PROBE_START_JITTER,
            stop_event=self.stop_event,
        )
        if self.exporter.system_gauges is not None:
            scheduler.register(SystemMetricsTask(
                gauges=self.exporter.system_gauges,
                interval=SYSTEM_METRICS_INTERVAL,
                stop_event=self.stop_event,
            ))

        server = MetricsServer(self.exporter, addr=METRICS_ADDR, port=METRICS_PORT, metrics_path=METRICS_PATH)
        server.start()
        self.console.print(
            f"[bold green]>>> Probing {len(self.registry)} endpoints every {PROBE_INTERVAL:g}s, "
            f"metrics at http://{METRICS_ADDR}:{server.bound_port}{METRICS_PATH} <<<[/bold green]"
        )

        scheduler.start()
        try:
            await self.stop_event.wait()
        finally:
            await scheduler.stop(timeout=SHUTDOWN_TIMEOUT_SECONDS)
            await process_manager.cleanup()
            ping_service.close()
            server.stop()
            self.console.print("[dim]Stopped.[/dim]")


__all__ = ["ExporterApp"]
