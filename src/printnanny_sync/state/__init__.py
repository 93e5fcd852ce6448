"""Local state mirrored from the PrintNanny Cloud."""

from printnanny_sync.state.cache import ModelCache

__all__ = ["ModelCache"]
