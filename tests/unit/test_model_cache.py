"""Unit tests for the read-through record caches."""

from __future__ import annotations

from pathlib import Path

import pytest

from printnanny_sync.api.models import Device
from printnanny_sync.exceptions import ErrorCategory, ServiceError
from printnanny_sync.state.cache import ModelCache


class CountingFetch:
    def __init__(self, result: Device | Exception) -> None:
        self.result = result
        self.calls = 0

    async def __call__(self) -> Device:
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.mark.asyncio
async def test_load_hydrates_once_then_reads_from_disk(tmp_path: Path) -> None:
    path = tmp_path / "device.json"
    fetch = CountingFetch(Device(id=1, hostname="printnanny", serial="abc-123"))
    cache = ModelCache(path, Device, fetch)

    first = await cache.load()
    second = await cache.load()

    assert fetch.calls == 1
    assert first == second
    assert second.id == 1
    # Fields this package does not declare survive the cache round trip.
    assert second.model_extra == {"serial": "abc-123"}
    assert path.read_text(encoding="utf-8").endswith("}\n")


@pytest.mark.asyncio
async def test_corrupt_file_is_replaced_by_hydration(tmp_path: Path) -> None:
    path = tmp_path / "device.json"
    path.write_text("{not json", encoding="utf-8")
    fetch = CountingFetch(Device(id=2, hostname="printnanny"))
    cache = ModelCache(path, Device, fetch)

    record = await cache.load()

    assert record.id == 2
    assert fetch.calls == 1
    assert cache.read() == record


@pytest.mark.asyncio
async def test_fetch_failure_propagates_without_writing(tmp_path: Path) -> None:
    path = tmp_path / "device.json"
    error = ServiceError("device not found", category=ErrorCategory.NOT_FOUND)
    cache = ModelCache(path, Device, CountingFetch(error))

    with pytest.raises(ServiceError) as exc_info:
        await cache.load()

    assert exc_info.value is error
    assert not path.exists()


@pytest.mark.asyncio
async def test_unexpected_fetch_error_is_wrapped(tmp_path: Path) -> None:
    path = tmp_path / "device.json"
    cache = ModelCache(path, Device, CountingFetch(ConnectionResetError("reset")))

    with pytest.raises(ServiceError) as exc_info:
        await cache.hydrate()

    assert exc_info.value.category is ErrorCategory.TRANSPORT
    assert isinstance(exc_info.value.__cause__, ConnectionResetError)
    assert not path.exists()


@pytest.mark.asyncio
async def test_hydrate_overwrites_existing_record(tmp_path: Path) -> None:
    path = tmp_path / "device.json"
    cache = ModelCache(path, Device, CountingFetch(Device(id=3, hostname="new")))
    cache.save(Device(id=3, hostname="old", stale=True))

    await cache.hydrate()

    assert cache.read().hostname == "new"
    assert cache.read().model_extra == {}
