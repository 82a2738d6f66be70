"""
Probe outcome - the classified result of a single probe.

Exactly two cases: ``ProbeSuccess`` (with latency) and ``ProbeFailure``.
The failure reason is diagnostic only and is never exported as a metric.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class FailureReason(Enum):
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    RESOLUTION = "resolution"
    TRANSPORT = "transport"


@dataclass(frozen=True)
class ProbeSuccess:
    """Echo reply received; ``latency`` is in seconds."""
    latency: float
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ProbeFailure:
    """No usable reply within the timeout."""
    reason: FailureReason
    detail: str = ""
    timestamp: float = field(default_factory=time.time)


ProbeOutcome = Union[ProbeSuccess, ProbeFailure]
