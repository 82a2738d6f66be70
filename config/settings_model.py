from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LATENCY_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]


class Settings(BaseSettings):
    """
    Application configuration settings using Pydantic Settings.
    Reads from environment variables (and an optional .env file).
    """

    # ─────────────────────────────────────────────────────────────────────────────
    # Endpoints
    # ─────────────────────────────────────────────────────────────────────────────
    CONFIG_FILE: str = Field(default="config.yaml", description="YAML file listing the endpoints to probe")

    # ─────────────────────────────────────────────────────────────────────────────
    # Probing
    # ─────────────────────────────────────────────────────────────────────────────
    PROBE_INTERVAL: float = Field(default=5.0, ge=0.1, description="Seconds between probes of one endpoint")
    PROBE_TIMEOUT: float = Field(default=1.0, gt=0, description="Upper bound for a single probe")
    PROBE_START_JITTER: float = Field(default=0.0, ge=0, description="Max random delay before the first probe")
    LATENCY_BUCKETS: List[float] = Field(default_factory=lambda: list(DEFAULT_LATENCY_BUCKETS))

    # ─────────────────────────────────────────────────────────────────────────────
    # Metrics
    # ─────────────────────────────────────────────────────────────────────────────
    METRICS_ADDR: str = "0.0.0.0"
    METRICS_PORT: int = Field(default=9898, ge=1, le=65535)
    METRICS_PATH: str = "/metrics"

    ENABLE_SYSTEM_METRICS: bool = True
    SYSTEM_METRICS_INTERVAL: float = Field(default=5.0, ge=0.1)

    # ─────────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────────
    SHUTDOWN_TIMEOUT_SECONDS: int = Field(default=10, ge=0)

    # ─────────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("LATENCY_BUCKETS")
    @classmethod
    def _buckets_ascending(cls, value: List[float]) -> List[float]:
        if not value:
            raise ValueError("LATENCY_BUCKETS must not be empty")
        if any(bound <= 0 for bound in value):
            raise ValueError("LATENCY_BUCKETS must be positive")
        if any(b <= a for a, b in zip(value, value[1:])):
            raise ValueError("LATENCY_BUCKETS must be strictly ascending")
        return value

    @field_validator("METRICS_PATH")
    @classmethod
    def _path_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("METRICS_PATH must start with '/'")
        return value
