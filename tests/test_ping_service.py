import asyncio
import os
import socket
import sys
import threading
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.endpoint_registry import Endpoint, EndpointRegistry
from core.probe_outcome import FailureReason, ProbeFailure, ProbeSuccess
from core.probe_task import ProbeTask
from metrics_store import MetricsStore
from services.ping_service import PingService

LINUX_OK = """PING 1.1.1.1 (1.1.1.1) 56(84) bytes of data.
64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=11.6 ms

--- 1.1.1.1 ping statistics ---
1 packets transmitted, 1 received, 0% packet loss, time 0ms
rtt min/avg/max/mdev = 11.633/11.633/11.633/0.000 ms
"""

LINUX_LOSS = """PING 10.255.255.1 (10.255.255.1) 56(84) bytes of data.

--- 10.255.255.1 ping statistics ---
1 packets transmitted, 0 received, 100% packet loss, time 0ms
"""

WINDOWS_UNREACHABLE = """Pinging 10.0.0.9 with 32 bytes of data:
Reply from 10.0.0.1: Destination host unreachable.
"""

ENDPOINT = Endpoint(index=0, name="A", address="1.1.1.1")


class TestPingParsing(unittest.TestCase):
    def setUp(self):
        self.service = PingService(MagicMock())

    def test_parse_latency_linux(self):
        self.assertAlmostEqual(PingService.parse_latency(LINUX_OK), 0.0116)

    def test_parse_latency_windows_formats(self):
        self.assertAlmostEqual(PingService.parse_latency("Reply from 1.1.1.1: bytes=32 time=14ms TTL=57"), 0.014)
        self.assertAlmostEqual(PingService.parse_latency("Reply from 1.1.1.1: bytes=32 time<1ms TTL=57"), 0.0005)
        self.assertIsNone(PingService.parse_latency("no timing here"))

    def test_classify_success_uses_reported_rtt(self):
        outcome = self.service.classify(LINUX_OK, "", 0, elapsed=0.2)
        self.assertIsInstance(outcome, ProbeSuccess)
        self.assertAlmostEqual(outcome.latency, 0.0116)

    def test_classify_success_falls_back_to_elapsed(self):
        outcome = self.service.classify("some reply without time", "", 0, elapsed=0.042)
        self.assertIsInstance(outcome, ProbeSuccess)
        self.assertAlmostEqual(outcome.latency, 0.042)

    def test_classify_packet_loss(self):
        outcome = self.service.classify(LINUX_LOSS, "", 1, elapsed=1.0)
        self.assertIsInstance(outcome, ProbeFailure)
        self.assertEqual(outcome.reason, FailureReason.UNREACHABLE)

    def test_classify_windows_unreachable_with_zero_exit(self):
        outcome = self.service.classify(WINDOWS_UNREACHABLE, "", 0, elapsed=0.01)
        self.assertIsInstance(outcome, ProbeFailure)
        self.assertEqual(outcome.reason, FailureReason.UNREACHABLE)

    def test_classify_resolution_failure(self):
        outcome = self.service.classify("", "ping: nosuchhost.invalid: Name or service not known", 2, elapsed=0.01)
        self.assertEqual(outcome.reason, FailureReason.RESOLUTION)

    def test_classify_other_error(self):
        outcome = self.service.classify("", "ping: socket: Operation not permitted", 2, elapsed=0.01)
        self.assertEqual(outcome.reason, FailureReason.TRANSPORT)


class TestPingCommand(unittest.TestCase):
    def setUp(self):
        self.service = PingService(MagicMock())

    def test_linux_command(self):
        with patch("services.ping_service.shutil.which", return_value="/bin/ping"), \
                patch("services.ping_service.sys.platform", "linux"):
            cmd, encoding, kwargs = self.service.build_ping_command("1.1.1.1", timeout=1.0)
            cmd6, _, _ = self.service.build_ping_command("2606:4700::1111", timeout=2.5, is_ipv6=True)

        self.assertEqual(cmd, ["/bin/ping", "-n", "-c", "1", "-W", "1", "1.1.1.1"])
        self.assertEqual(encoding, "utf-8")
        self.assertEqual(kwargs, {})
        self.assertEqual(cmd6, ["/bin/ping", "-6", "-n", "-c", "1", "-W", "3", "2606:4700::1111"])

    def test_windows_command(self):
        with patch("services.ping_service.shutil.which", return_value="C:\\ping.exe"), \
                patch("services.ping_service.sys.platform", "win32"):
            cmd, encoding, kwargs = self.service.build_ping_command("1.1.1.1", timeout=0.5)

        self.assertEqual(cmd, ["C:\\ping.exe", "-n", "1", "-w", "500", "1.1.1.1"])
        self.assertEqual(encoding, "oem")
        self.assertIn("creationflags", kwargs)

    def test_rejects_option_like_host(self):
        with patch("services.ping_service.shutil.which", return_value="/bin/ping"):
            self.assertIsNone(self.service.build_ping_command("-f", timeout=1.0))

    def test_missing_binary(self):
        with patch("services.ping_service.shutil.which", return_value=None):
            self.assertFalse(self.service.is_available())
            self.assertIsNone(self.service.build_ping_command("1.1.1.1", timeout=1.0))


class TestPingProbe(unittest.IsolatedAsyncioTestCase):
    def _service(self, run_command):
        pm = MagicMock()
        pm.run_command = run_command
        service = PingService(pm)
        service._ping_cmd = "/bin/ping"
        return service

    async def test_probe_success(self):
        service = self._service(AsyncMock(return_value=(LINUX_OK, "", 0)))
        outcome = await service.probe(ENDPOINT, timeout=1.0)

        self.assertIsInstance(outcome, ProbeSuccess)
        self.assertAlmostEqual(outcome.latency, 0.0116)
        args, kwargs = service.process_manager.run_command.call_args
        self.assertEqual(args[0][-1], "1.1.1.1")
        self.assertEqual(kwargs["timeout"], 1.0)

    async def test_probe_timeout_is_failure(self):
        service = self._service(AsyncMock(side_effect=asyncio.TimeoutError()))
        outcome = await service.probe(ENDPOINT, timeout=0.1)

        self.assertIsInstance(outcome, ProbeFailure)
        self.assertEqual(outcome.reason, FailureReason.TIMEOUT)

    async def test_probe_os_error_is_transport_failure(self):
        service = self._service(AsyncMock(side_effect=FileNotFoundError("ping")))
        outcome = await service.probe(ENDPOINT, timeout=1.0)

        self.assertEqual(outcome.reason, FailureReason.TRANSPORT)

    async def test_probe_without_ping_binary(self):
        service = self._service(AsyncMock())
        service._ping_cmd = None
        with patch("services.ping_service.shutil.which", return_value=None):
            outcome = await service.probe(ENDPOINT, timeout=1.0)

        self.assertEqual(outcome.reason, FailureReason.TRANSPORT)
        service.process_manager.run_command.assert_not_called()

    async def test_ipv6_detection_for_literals(self):
        service = self._service(AsyncMock())
        self.assertTrue(await service._detect_ipv6_async("::1"))
        self.assertFalse(await service._detect_ipv6_async("127.0.0.1"))


class TestPingLookupIsolation(unittest.IsolatedAsyncioTestCase):
    async def test_hanging_lookups_do_not_fail_other_endpoints(self):
        release = threading.Event()
        self.addCleanup(release.set)
        lookups = []

        def fake_getaddrinfo(host, port):
            lookups.append(host)
            if host != "good.example":
                release.wait(5)
            return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.1", 0))]

        endpoints = [{"name": f"slow{i}", "address": f"slow{i}.example"} for i in range(4)]
        endpoints.append({"name": "good", "address": "good.example"})
        registry = EndpointRegistry(endpoints)
        store = MetricsStore(registry, (0.01, 0.1, 1.0))

        pm = MagicMock()
        pm.run_command = AsyncMock(return_value=(LINUX_OK, "", 0))
        # Fewer lookup threads than hanging hosts
        service = PingService(pm, dns_workers=2)
        service._ping_cmd = "/bin/ping"
        self.addCleanup(service.close)

        tasks = [
            ProbeTask(endpoint=ep, prober=service, store=store, timeout=1.0,
                      interval=1.0, stop_event=asyncio.Event())
            for ep in registry
        ]
        with patch("services.ping_service.socket.getaddrinfo", side_effect=fake_getaddrinfo):
            for _ in range(2):
                await asyncio.gather(*(task.execute() for task in tasks))

        good = store.snapshot_endpoint(4)
        self.assertEqual((good.success_count, good.fail_count), (2, 0))
        # A hung host never holds more than one lookup thread
        for host in set(lookups):
            self.assertEqual(lookups.count(host), 1)

    async def test_failed_lookup_is_cached(self):
        service = PingService(MagicMock())
        self.addCleanup(service.close)

        with patch("services.ping_service.socket.getaddrinfo",
                   side_effect=socket.gaierror("Name or service not known")) as gai:
            self.assertFalse(await service._detect_ipv6_async("nosuch.invalid", timeout=1.0))
            self.assertFalse(await service._detect_ipv6_async("nosuch.invalid", timeout=1.0))

        self.assertEqual(gai.call_count, 1)

    async def test_ipv6_only_host_is_detected_and_cached(self):
        service = PingService(MagicMock())
        self.addCleanup(service.close)
        infos = [(socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("2001:db8::1", 0, 0, 0))]

        with patch("services.ping_service.socket.getaddrinfo", return_value=infos) as gai:
            self.assertTrue(await service._detect_ipv6_async("v6only.example", timeout=1.0))
            self.assertTrue(await service._detect_ipv6_async("v6only.example", timeout=1.0))

        self.assertEqual(gai.call_count, 1)


if __name__ == "__main__":
    unittest.main()
