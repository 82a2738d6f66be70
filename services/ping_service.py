from __future__ import annotations

import asyncio
import functools
import ipaddress
import logging
import math
import re
import shutil
import socket
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Tuple, TYPE_CHECKING

from core.probe_outcome import FailureReason, ProbeFailure, ProbeOutcome, ProbeSuccess

if TYPE_CHECKING:
    from core.endpoint_registry import Endpoint
    from infrastructure.process_manager import ProcessManager

_DNS_CACHE_TTL = 60.0

_RESOLUTION_PATTERNS = (
    "unknown host",
    "name or service not known",
    "temporary failure in name resolution",
    "could not find host",
    "cannot resolve",
    "no address associated with hostname",
)

_UNREACHABLE_PATTERNS = (
    "unreachable",
    "request timed out",
    "100% packet loss",
    "100.0% packet loss",
    "100% loss",
)

_TIME_RE = re.compile(r"time\s*([=<])\s*([0-9]+(?:[.,][0-9]+)?)\s*ms", re.IGNORECASE)


class PingService:
    """Single-echo reachability probes using the system ``ping`` binary."""

    def __init__(self, process_manager: ProcessManager, dns_workers: int = 4) -> None:
        self._ping_cmd: str | None = None
        self._dns_cache: dict[str, dict[str, Any]] = {}
        self._dns_cache_lock = threading.Lock()
        self._dns_pending: dict[str, asyncio.Future] = {}
        self._dns_executor = ThreadPoolExecutor(max_workers=max(1, dns_workers), thread_name_prefix="dns")
        self.process_manager = process_manager

    def _find_ping(self) -> str | None:
        if self._ping_cmd is None:
            self._ping_cmd = shutil.which("ping")
        return self._ping_cmd

    def is_available(self) -> bool:
        """Check if ping command is available on the system."""
        return self._find_ping() is not None

    async def _detect_ipv6_async(self, host: str, timeout: float = 1.0) -> bool:
        """Detect if host is an IPv6 literal or resolves only to IPv6.

        Lookups run on the service's own executor with at most one in flight
        per host. The wait is capped at half the probe timeout; past that the
        host is treated as IPv4 and ``ping`` resolves it itself.
        """
        try:
            return ipaddress.ip_address(host).version == 6
        except ValueError:
            pass

        with self._dns_cache_lock:
            cached = self._dns_cache.get(host)
            if cached and (time.monotonic() - cached["timestamp"]) < _DNS_CACHE_TTL:
                return cached["is_ipv6"]

        pending = self._dns_pending.get(host)
        if pending is None:
            loop = asyncio.get_running_loop()
            # socket.getaddrinfo is blocking, run in executor
            pending = loop.run_in_executor(self._dns_executor, socket.getaddrinfo, host, None)
            self._dns_pending[host] = pending
            pending.add_done_callback(functools.partial(self._store_lookup, host))

        try:
            infos = await asyncio.wait_for(asyncio.shield(pending), timeout=timeout / 2)
        except asyncio.TimeoutError:
            logging.debug(f"getaddrinfo({host}) still pending, probing as IPv4")
            return False
        except (OSError, UnicodeError):
            # Let ping report the resolution failure itself
            return False
        return self._is_ipv6_only(infos)

    @staticmethod
    def _is_ipv6_only(infos: list) -> bool:
        families = {info[0] for info in infos}
        return socket.AF_INET6 in families and socket.AF_INET not in families

    def _store_lookup(self, host: str, future: asyncio.Future) -> None:
        self._dns_pending.pop(host, None)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logging.debug(f"getaddrinfo({host}) failed: {exc}")
            is_ipv6 = False
        else:
            is_ipv6 = self._is_ipv6_only(future.result())
        with self._dns_cache_lock:
            self._dns_cache[host] = {"is_ipv6": is_ipv6, "timestamp": time.monotonic()}

    def close(self) -> None:
        """Stop the lookup executor without waiting for hung resolutions."""
        self._dns_executor.shutdown(wait=False, cancel_futures=True)

    def build_ping_command(self, host: str, timeout: float, is_ipv6: bool = False) -> Tuple[list[str], str, dict[str, Any]] | None:
        """Build the ping command, output encoding and subprocess kwargs."""
        ping_cmd = self._find_ping()
        if not ping_cmd:
            return None

        # Security check: prevent argument injection
        if host.strip().startswith("-"):
            logging.error(f"Security: Invalid host '{host}' (starts with hyphen)")
            return None

        kwargs: dict[str, Any] = {}
        if sys.platform == "win32":
            cmd = [ping_cmd, "-n", "1", "-w", str(max(1, int(timeout * 1000)))]
            if is_ipv6:
                cmd.append("-6")
            cmd.append(host)
            encoding = "oem"
            # Prevent console windows from flashing for each probe
            kwargs["creationflags"] = 0x08000000  # CREATE_NO_WINDOW
        elif sys.platform == "darwin":
            if is_ipv6:
                cmd = [shutil.which("ping6") or ping_cmd, "-c", "1", host]
            else:
                cmd = [ping_cmd, "-c", "1", "-t", str(max(1, math.ceil(timeout))), host]
            encoding = "utf-8"
        else:
            cmd = [ping_cmd]
            if is_ipv6:
                cmd.append("-6")
            cmd += ["-n", "-c", "1", "-W", str(max(1, math.ceil(timeout))), host]
            encoding = "utf-8"

        return cmd, encoding, kwargs

    async def probe(self, endpoint: Endpoint, timeout: float) -> ProbeOutcome:
        """Send one echo request to ``endpoint.address`` and classify the result."""
        host = endpoint.address
        if not self.is_available():
            return ProbeFailure(FailureReason.TRANSPORT, "ping command not found")

        is_ipv6 = await self._detect_ipv6_async(host, timeout)
        built = self.build_ping_command(host, timeout, is_ipv6)
        if built is None:
            return ProbeFailure(FailureReason.TRANSPORT, "cannot build ping command")
        cmd, encoding, kwargs = built

        started = time.perf_counter()
        try:
            stdout, stderr, returncode = await self.process_manager.run_command(
                cmd,
                timeout=timeout,
                encoding=encoding,
                errors="replace",
                **kwargs
            )
        except asyncio.TimeoutError:
            return ProbeFailure(FailureReason.TIMEOUT, f"no reply within {timeout}s")
        except OSError as exc:
            return ProbeFailure(FailureReason.TRANSPORT, str(exc))
        elapsed = time.perf_counter() - started

        return self.classify(str(stdout), str(stderr), returncode, elapsed)

    def classify(self, stdout: str, stderr: str, returncode: int | None, elapsed: float) -> ProbeOutcome:
        """Turn ping output into a probe outcome."""
        output = f"{stdout}\n{stderr}".lower()

        if returncode == 0 and not any(p in output for p in _UNREACHABLE_PATTERNS):
            latency = self.parse_latency(stdout)
            return ProbeSuccess(latency if latency is not None else elapsed)

        if any(p in output for p in _RESOLUTION_PATTERNS):
            return ProbeFailure(FailureReason.RESOLUTION, stderr.strip() or stdout.strip())
        if any(p in output for p in _UNREACHABLE_PATTERNS) or returncode == 1:
            return ProbeFailure(FailureReason.UNREACHABLE, f"exit code {returncode}")
        return ProbeFailure(FailureReason.TRANSPORT, f"exit code {returncode}: {stderr.strip()}")

    @staticmethod
    def parse_latency(stdout: str) -> float | None:
        """Round-trip time in seconds from ``time=12.3 ms`` style output."""
        match = _TIME_RE.search(stdout)
        if not match:
            return None
        value = float(match.group(2).replace(",", "."))
        if match.group(1) == "<":
            # Windows reports sub-millisecond replies as "time<1ms"
            value = value / 2
        return value / 1000.0
