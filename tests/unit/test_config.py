"""Unit tests for the tool configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from printnanny_sync.core import config as config_module
from printnanny_sync.core.config import SyncConfig


def test_sync_config_defaults() -> None:
    config = SyncConfig(_env_file=None)

    assert config.log_level == "INFO"
    assert config.log_format == "json"
    assert config.settings_file == Path(
        "/home/printnanny/.config/printnanny/settings/printnanny.toml"
    )
    assert config.device_json == Path("/var/run/printnanny/device.json")
    assert config.license_json == Path("/var/run/printnanny/license.json")
    assert config.api_config_json == Path("/var/run/printnanny/api_config.json")


def test_sync_config_reads_prefixed_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("PRINTNANNY_SYNC_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("PRINTNANNY_SYNC_LOG_FORMAT", "text")

    config = SyncConfig(_env_file=None)

    assert config.data_dir == tmp_path
    assert config.device_json == tmp_path / "device.json"
    assert config.log_format == "text"


def test_sync_config_rejects_unknown_log_format() -> None:
    with pytest.raises(ValidationError):
        SyncConfig(_env_file=None, log_format="xml")


def test_resolved_hostname_falls_back_to_system(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module.socket, "gethostname", lambda: "octopi")

    assert SyncConfig(_env_file=None).resolved_hostname() == "octopi"
    assert SyncConfig(_env_file=None, hostname="printnanny").resolved_hostname() == "printnanny"
