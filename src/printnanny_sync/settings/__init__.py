"""Layered device settings and their git-backed persistence."""

from printnanny_sync.settings.formats import SettingsFormat, dumps, from_canonical, to_canonical
from printnanny_sync.settings.models import PrintNannySettings
from printnanny_sync.settings.resolver import SettingsResolver
from printnanny_sync.settings.vcs import VersionedSettingsStore

__all__ = [
    "PrintNannySettings",
    "SettingsFormat",
    "SettingsResolver",
    "VersionedSettingsStore",
    "dumps",
    "from_canonical",
    "to_canonical",
]
