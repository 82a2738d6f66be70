"""
Application configuration.

All values can be overridden via environment variables (see ``settings_model``).
The CLI sets the environment before this package is first imported.
"""

from .settings_model import DEFAULT_LATENCY_BUCKETS, Settings

_settings = Settings()

# ─────────────────────────────────────────────────────────────────────────────
# Endpoints / probing
# ─────────────────────────────────────────────────────────────────────────────

CONFIG_FILE = _settings.CONFIG_FILE
PROBE_INTERVAL = _settings.PROBE_INTERVAL
PROBE_TIMEOUT = _settings.PROBE_TIMEOUT
PROBE_START_JITTER = _settings.PROBE_START_JITTER
LATENCY_BUCKETS = tuple(_settings.LATENCY_BUCKETS)

# ─────────────────────────────────────────────────────────────────────────────
# Metrics server
# ─────────────────────────────────────────────────────────────────────────────

METRICS_ADDR = _settings.METRICS_ADDR
METRICS_PORT = _settings.METRICS_PORT
METRICS_PATH = _settings.METRICS_PATH
ENABLE_SYSTEM_METRICS = _settings.ENABLE_SYSTEM_METRICS
SYSTEM_METRICS_INTERVAL = _settings.SYSTEM_METRICS_INTERVAL

# ─────────────────────────────────────────────────────────────────────────────
# Lifecycle / logging
# ─────────────────────────────────────────────────────────────────────────────

SHUTDOWN_TIMEOUT_SECONDS = _settings.SHUTDOWN_TIMEOUT_SECONDS
LOG_LEVEL = _settings.LOG_LEVEL
LOG_FILE = _settings.LOG_FILE

__all__ = [
    "Settings",
    "DEFAULT_LATENCY_BUCKETS",
    "CONFIG_FILE",
    "PROBE_INTERVAL",
    "PROBE_TIMEOUT",
    "PROBE_START_JITTER",
    "LATENCY_BUCKETS",
    "METRICS_ADDR",
    "METRICS_PORT",
    "METRICS_PATH",
    "ENABLE_SYSTEM_METRICS",
    "SYSTEM_METRICS_INTERVAL",
    "SHUTDOWN_TIMEOUT_SECONDS",
    "LOG_LEVEL",
    "LOG_FILE",
]
