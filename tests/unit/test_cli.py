"""Unit tests for the command line entrypoint."""

from __future__ import annotations

import contextlib
import json
import shutil
import subprocess
import tomllib
from pathlib import Path

import pytest
from conftest import FakeRemoteApi

from printnanny_sync.api.models import Device, License
from printnanny_sync.main import build_parser, main


@pytest.fixture
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> tuple[Path, Path]:
    settings_dir = tmp_path / "settings"
    data_dir = tmp_path / "data"
    settings_dir.mkdir()
    data_dir.mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PRINTNANNY_SYNC_SETTINGS_DIR", str(settings_dir))
    monkeypatch.setenv("PRINTNANNY_SYNC_DATA_DIR", str(data_dir))
    monkeypatch.setenv("PRINTNANNY_SYNC_HOSTNAME", "printnanny-test")
    return settings_dir, data_dir


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_get_missing_key_writes_nothing_to_stdout(
    cli_env: tuple[Path, Path], capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["settings", "get", "--format", "json", "nonexistent.key"])

    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == ""
    assert "Settings key not found: nonexistent.key" in captured.err


def test_get_single_value(cli_env: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
    settings_dir, _ = cli_env
    (settings_dir / "printnanny.toml").write_text("[camera]\nwidth = 640\n", encoding="utf-8")

    assert main(["settings", "get", "camera.width", "--format", "json"]) == 0
    assert capsys.readouterr().out == "640\n"

    assert main(["settings", "get", "camera.width", "--format", "toml"]) == 0
    assert capsys.readouterr().out == "width = 640\n"


def test_show_json(cli_env: tuple[Path, Path], capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["settings", "show", "--format", "json"]) == 0

    shown = json.loads(capsys.readouterr().out)
    assert shown["git"]["remote"] == "https://github.com/bitsy-ai/printnanny-settings.git"
    assert shown["camera"]["width"] == 1280


def test_show_unimplemented_format_fails(
    cli_env: tuple[Path, Path], capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["settings", "show", "--format", "yaml"]) == 1
    assert capsys.readouterr().out == ""


def test_set_rejects_wrong_type_without_writing(
    cli_env: tuple[Path, Path], capsys: pytest.CaptureFixture[str]
) -> None:
    settings_dir, _ = cli_env

    assert main(["settings", "set", "camera.width", "wide"]) == 1

    assert capsys.readouterr().out == ""
    assert not (settings_dir / "printnanny.toml").exists()


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_set_writes_and_commits(
    cli_env: tuple[Path, Path], capsys: pytest.CaptureFixture[str]
) -> None:
    settings_dir, _ = cli_env
    subprocess.run(["git", "init", "-q"], cwd=settings_dir, check=True)

    assert main(["settings", "set", "camera.width", "640"]) == 0

    assert "camera.width updated" in capsys.readouterr().out
    stored = tomllib.loads((settings_dir / "printnanny.toml").read_text(encoding="utf-8"))
    assert stored["camera"]["width"] == 640
    subject = subprocess.run(
        ["git", "log", "-1", "--format=%s"],
        cwd=settings_dir,
        capture_output=True,
        text=True,
        check=True,
    ).stdout
    assert subject.startswith("PrintNannySettings.camera.width updated at ")


def test_device_show_reads_cached_record(
    cli_env: tuple[Path, Path], capsys: pytest.CaptureFixture[str]
) -> None:
    _, data_dir = cli_env
    (data_dir / "device.json").write_text(
        json.dumps({"id": 3, "hostname": "printnanny-test"}), encoding="utf-8"
    )
    (data_dir / "license.json").write_text(
        json.dumps({"id": 7, "device": 3, "fingerprint": "abc"}), encoding="utf-8"
    )

    assert main(["device", "show"]) == 0

    assert json.loads(capsys.readouterr().out)["id"] == 3


def test_invalid_tool_configuration_exits_2(
    cli_env: tuple[Path, Path],
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("PRINTNANNY_SYNC_LOG_FORMAT", "xml")

    assert main(["settings", "show"]) == 2
    assert "Configuration error" in capsys.readouterr().err


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_set_unknown_key_fails_without_commit(
    cli_env: tuple[Path, Path], capsys: pytest.CaptureFixture[str]
) -> None:
    settings_dir, _ = cli_env
    subprocess.run(["git", "init", "-q"], cwd=settings_dir, check=True)
    assert main(["settings", "set", "camera.width", "640"]) == 0
    capsys.readouterr()
    before = (settings_dir / "printnanny.toml").read_text(encoding="utf-8")

    assert main(["settings", "set", "camera.widht", "800"]) == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "camera.widht" in captured.err
    assert (settings_dir / "printnanny.toml").read_text(encoding="utf-8") == before
    count = subprocess.run(
        ["git", "rev-list", "--count", "HEAD"],
        cwd=settings_dir,
        capture_output=True,
        text=True,
        check=True,
    ).stdout
    assert count.strip() == "1"


@pytest.fixture
def cached_records(cli_env: tuple[Path, Path]) -> Path:
    _, data_dir = cli_env
    (data_dir / "device.json").write_text(
        json.dumps({"id": 1, "hostname": "printnanny-test"}), encoding="utf-8"
    )
    (data_dir / "license.json").write_text(
        json.dumps({"id": 7, "device": 1, "fingerprint": "abc"}), encoding="utf-8"
    )
    return data_dir


def _serve(monkeypatch: pytest.MonkeyPatch, api: FakeRemoteApi) -> None:
    @contextlib.asynccontextmanager
    async def fake_client(config, settings):  # type: ignore[no-untyped-def]
        yield api

    monkeypatch.setattr("printnanny_sync.main.api_client_from_config", fake_client)


def test_license_check_prints_activated_license(
    cached_records: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    api = FakeRemoteApi(
        device=Device(id=1, hostname="printnanny-test"),
        license=License(id=7, device=1, fingerprint="abc"),
    )
    _serve(monkeypatch, api)

    assert main(["license", "check"]) == 0

    shown = json.loads(capsys.readouterr().out)
    assert shown["id"] == 7
    assert shown["activated"] is True
    assert json.loads((cached_records / "license.json").read_text(encoding="utf-8"))["activated"]


def test_license_check_mismatch_writes_nothing_to_stdout(
    cached_records: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    api = FakeRemoteApi(
        device=Device(id=1, hostname="printnanny-test"),
        license=License(id=7, device=1, fingerprint="xyz"),
    )
    _serve(monkeypatch, api)

    assert main(["license", "check"]) == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "activate_license" not in api.call_names()
