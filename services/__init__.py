"""Network probing services package."""

from .ping_service import PingService

__all__ = [
    "PingService",
]
