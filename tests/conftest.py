"""Test configuration and fixtures."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from printnanny_sync.api.models import (
    Device,
    License,
    Task,
    TaskStatus,
    TaskStatusType,
    TaskType,
)
from printnanny_sync.core.config import SyncConfig
from printnanny_sync.exceptions import ErrorCategory, ServiceError


class FakeRemoteApi:
    """In-memory `RemoteApi` that records every call."""

    def __init__(self, *, device: Device | None = None, license: License | None = None) -> None:
        self.device = device
        self.license = license
        self.calls: list[tuple[str, tuple[object, ...]]] = []
        self.tasks: dict[int, Task] = {}
        self.statuses: list[TaskStatus] = []
        self.fail_with: Exception | None = None
        self.activate_error: Exception | None = None
        self._next_task_id = 100

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, args))
        if self.fail_with is not None:
            raise self.fail_with

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def submitted(self) -> list[TaskStatusType]:
        return [s.status for s in self.statuses]

    async def fetch_device(self, device_id: int) -> Device:
        self._record("fetch_device", device_id)
        if self.device is None or self.device.id != device_id:
            raise ServiceError("device not found", category=ErrorCategory.NOT_FOUND)
        return self.device

    async def fetch_device_by_hostname(self, hostname: str) -> Device:
        self._record("fetch_device_by_hostname", hostname)
        if self.device is None:
            raise ServiceError("device not found", category=ErrorCategory.NOT_FOUND)
        return self.device

    async def fetch_active_license(self, device_id: int) -> License:
        self._record("fetch_active_license", device_id)
        if self.license is None:
            raise ServiceError("license not found", category=ErrorCategory.NOT_FOUND)
        return self.license

    async def activate_license(self, license_id: int) -> License:
        self._record("activate_license", license_id)
        if self.activate_error is not None:
            raise self.activate_error
        assert self.license is not None
        return self.license.model_copy(update={"activated": True})

    async def create_task(self, device_id: int, task_type: TaskType) -> Task:
        self._record("create_task", device_id, task_type)
        task = Task(id=self._next_task_id, task_type=task_type, device=device_id)
        self._next_task_id += 1
        self.tasks[task.id] = task
        return task

    async def submit_task_status(
        self,
        device_id: int,
        task_id: int,
        status: TaskStatusType,
        detail: str | None = None,
        wiki_url: str | None = None,
    ) -> Task:
        self._record("submit_task_status", device_id, task_id, status, detail, wiki_url)
        entry = TaskStatus(
            id=len(self.statuses) + 1,
            task=task_id,
            status=status,
            detail=detail,
            wiki_url=wiki_url,
        )
        self.statuses.append(entry)
        task = self.tasks.get(task_id) or Task(
            id=task_id, task_type=TaskType.SYSTEM_CHECK, device=device_id
        )
        task = task.model_copy(update={"last_status": entry})
        self.tasks[task_id] = task
        return task


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of settings resolution."""
    for name in list(os.environ):
        if name.startswith(("PRINTNANNY_SETTINGS_", "PRINTNANNY_SYNC_")):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def settings_dir(tmp_path: Path) -> Path:
    """Provide a temporary settings directory."""
    path = tmp_path / "settings"
    path.mkdir()
    return path


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Provide a temporary data directory for cached records."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def sync_config(settings_dir: Path, data_dir: Path) -> SyncConfig:
    """Provide a test configuration pointing at temporary directories."""
    return SyncConfig(
        _env_file=None,
        settings_dir=settings_dir,
        data_dir=data_dir,
        hostname="printnanny-test",
        lock_retry_interval=0.01,
        lock_max_retries=5,
    )


@pytest.fixture
def device() -> Device:
    return Device(id=1, hostname="printnanny-test")


@pytest.fixture
def license_abc() -> License:
    return License(id=7, device=1, fingerprint="abc")


@pytest.fixture
def fake_api(device: Device, license_abc: License) -> FakeRemoteApi:
    return FakeRemoteApi(device=device, license=license_abc)
