"""PrintNanny device state synchronization.

Provides:
- layered settings resolution with git-backed persistence
- local JSON caches for remote-authoritative device/license records
- task status reporting for remote verification tasks (license check)
"""

__version__ = "0.1.0"

from printnanny_sync.core.config import SyncConfig
from printnanny_sync.settings.models import PrintNannySettings

__all__ = ["__version__", "PrintNannySettings", "SyncConfig"]
