"""Runtime configuration for printnanny-sync itself.

This is the tool's own configuration (where files live, how to log), not the
device settings it manages. Those are resolved by
:class:`printnanny_sync.settings.resolver.SettingsResolver`.

Configuration is loaded from:
- environment variables prefixed with `PRINTNANNY_SYNC_`
- and a local `.env` file (if present)
"""

from __future__ import annotations

import socket
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from printnanny_sync.core.logging import configure_logging


class SyncConfig(BaseSettings):
    """Settings for the sync tool.

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `SyncConfig(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        description="Root logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log line format written to stderr",
    )

    settings_dir: Path = Field(
        default=Path("/home/printnanny/.config/printnanny/settings"),
        description="Git working tree holding the settings file",
    )
    settings_filename: str = Field(
        default="printnanny.toml",
        description="Name of the canonical settings file inside settings_dir",
    )
    data_dir: Path = Field(
        default=Path("/var/run/printnanny"),
        description="Directory where device/license records are cached",
    )

    hostname: str | None = Field(
        default=None,
        description="Hostname used to look up this device (defaults to the system hostname)",
    )

    api_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for a single remote API request",
    )
    lock_retry_interval: float = Field(
        default=0.2,
        gt=0,
        description="Seconds between attempts to acquire the settings lock",
    )
    lock_max_retries: int = Field(
        default=50,
        ge=1,
        description="Attempts before giving up on the settings lock",
    )

    model_config = SettingsConfigDict(
        env_prefix="PRINTNANNY_SYNC_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def settings_file(self) -> Path:
        """Path of the version-controlled settings file."""

        return self.settings_dir / self.settings_filename

    @property
    def device_json(self) -> Path:
        return self.data_dir / "device.json"

    @property
    def license_json(self) -> Path:
        return self.data_dir / "license.json"

    @property
    def api_config_json(self) -> Path:
        """Cached API credentials written by the signup flow."""

        return self.data_dir / "api_config.json"

    def resolved_hostname(self) -> str:
        return self.hostname or socket.gethostname()

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level, json_output=self.log_format == "json")
