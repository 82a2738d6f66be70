from __future__ import annotations

"""Prometheus metrics HTTP server."""

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from prometheus_client import CONTENT_TYPE_LATEST

if TYPE_CHECKING:
    from infrastructure.exposition import MetricsExporter


class MetricsHTTPServer(ThreadingHTTPServer):
    """Threading HTTP server carrying the exporter for its handlers."""

    daemon_threads = True

    def __init__(self, server_address, exporter: MetricsExporter, metrics_path: str = "/metrics") -> None:
        self.exporter = exporter
        self.metrics_path = metrics_path
        super().__init__(server_address, MetricsHandler)


class MetricsHandler(BaseHTTPRequestHandler):
    """Serves the exposition on the metrics path and 404 everywhere else."""

    server: MetricsHTTPServer

    def do_GET(self) -> None:
        """Handle GET requests for metrics."""
        if urlsplit(self.path).path != self.server.metrics_path:
            self.send_error(404)
            return

        try:
            data = self.server.exporter.render()
        except Exception as exc:
            logging.error(f"Metrics error: {exc}", exc_info=True)
            self.send_error(500, "Internal Server Error")
            return

        self.send_response(200)
        self.send_header("Content-Type", CONTENT_TYPE_LATEST)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format: str, *args) -> None:
        """Suppress default HTTP logging."""
        logging.debug(f"Metrics server: {format % args}")


class MetricsServer:
    """Prometheus metrics HTTP server running in a background thread."""

    def __init__(
        self,
        exporter: MetricsExporter,
        addr: str = "0.0.0.0",
        port: int = 9898,
        metrics_path: str = "/metrics",
    ) -> None:
        self.exporter = exporter
        self.addr = addr
        self.port = port
        self.metrics_path = metrics_path
        self.server: MetricsHTTPServer | None = None
        self.thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    @property
    def bound_port(self) -> int | None:
        """Actual listening port (useful when started with port 0)."""
        if self.server is None:
            return None
        return self.server.server_address[1]

    def start(self) -> None:
        """Start metrics server in background thread.

        Raises:
            OSError: the address could not be bound.
        """
        if self.running:
            return

        self.server = MetricsHTTPServer((self.addr, self.port), self.exporter, self.metrics_path)
        self.thread = threading.Thread(target=self.server.serve_forever, name="metrics-server", daemon=True)
        self.thread.start()
        logging.info(f"Metrics server started on http://{self.addr}:{self.bound_port}{self.metrics_path}")

    def stop(self) -> None:
        """Stop metrics server."""
        if self.server is None:
            return
        self.server.shutdown()
        self.server.server_close()
        if self.thread is not None:
            self.thread.join(timeout=5.0)
        self.server = None
        self.thread = None
        logging.info("Metrics server stopped")


def start_metrics_server(
    exporter: MetricsExporter,
    addr: str = "0.0.0.0",
    port: int = 9898,
    metrics_path: str = "/metrics",
) -> MetricsServer:
    """Create and start the metrics server."""
    server = MetricsServer(exporter, addr=addr, port=port, metrics_path=metrics_path)
    server.start()
    return server
