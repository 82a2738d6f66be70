import os
import sys
import threading
import unittest
import urllib.error
import urllib.request

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from prometheus_client import CONTENT_TYPE_LATEST

from core.endpoint_registry import EndpointRegistry
from core.probe_outcome import ProbeSuccess
from infrastructure.exposition import MetricsExporter
from infrastructure.metrics import start_metrics_server
from metrics_store import MetricsStore


class BrokenExporter:
    def render(self):
        raise RuntimeError("boom")


def _get(srv, path):
    return urllib.request.urlopen(f"http://127.0.0.1:{srv.bound_port}{path}", timeout=5)


class TestMetricsServer(unittest.TestCase):
    def setUp(self):
        registry = EndpointRegistry([
            {"name": "A", "address": "1.1.1.1"},
            {"name": "B", "address": "8.8.8.8"},
        ])
        self.store = MetricsStore(registry, (0.01, 0.1, 1.0))
        self.server = start_metrics_server(MetricsExporter(self.store), addr="127.0.0.1", port=0)
        self.addCleanup(self.server.stop)

    def _status_of_error(self, srv, path):
        with self.assertRaises(urllib.error.HTTPError) as ctx:
            _get(srv, path)
        ctx.exception.close()
        return ctx.exception.code

    def test_metrics_path_returns_exposition(self):
        self.store.record(0, ProbeSuccess(0.02))

        with _get(self.server, "/metrics") as response:
            self.assertEqual(response.status, 200)
            self.assertEqual(response.headers["Content-Type"], CONTENT_TYPE_LATEST)
            body = response.read().decode("utf-8")

        self.assertIn('ping_success{address="1.1.1.1",name="A"} 1', body)
        self.assertIn('ping_success{address="8.8.8.8",name="B"} 0', body)

    def test_query_string_is_ignored(self):
        with _get(self.server, "/metrics?debug=1") as response:
            self.assertEqual(response.status, 200)

    def test_unknown_path_returns_404_and_leaves_metrics_alone(self):
        before = self.store.snapshot()

        for path in ("/", "/metricsx", "/health", "/metrics/extra"):
            with self.subTest(path=path):
                self.assertEqual(self._status_of_error(self.server, path), 404)

        self.assertEqual(self.store.snapshot(), before)

    def test_render_error_returns_500_for_that_request_only(self):
        srv = start_metrics_server(BrokenExporter(), addr="127.0.0.1", port=0)
        self.addCleanup(srv.stop)

        self.assertEqual(self._status_of_error(srv, "/metrics"), 500)
        # Server keeps serving afterwards
        self.assertEqual(self._status_of_error(srv, "/metrics"), 500)
        self.assertTrue(srv.running)

    def test_concurrent_scrapes(self):
        for _ in range(5):
            self.store.record(1, ProbeSuccess(0.5))

        results = []
        errors = []

        def scrape():
            try:
                with _get(self.server, "/metrics") as response:
                    results.append(response.read().decode("utf-8"))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=scrape) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(len(results), 8)
        for body in results:
            self.assertIn('ping_latency_count{address="8.8.8.8",name="B"} 5', body)

    def test_stop_is_idempotent(self):
        srv = start_metrics_server(MetricsExporter(self.store), addr="127.0.0.1", port=0)
        self.assertTrue(srv.running)
        srv.stop()
        srv.stop()
        self.assertFalse(srv.running)


if __name__ == "__main__":
    unittest.main()
