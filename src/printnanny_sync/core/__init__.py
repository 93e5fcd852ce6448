"""Core package initialization."""

from printnanny_sync.core.config import SyncConfig
from printnanny_sync.core.logging import configure_logging

__all__ = [
    "SyncConfig",
    "configure_logging",
]
