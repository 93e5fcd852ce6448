"""File primitives shared by the settings store and the model caches.

- atomic writes: temp file in the target directory -> fsync -> os.replace
- cross-process locking: a lock directory created with os.mkdir (atomic)

Readers never observe a partially written file; they see either the old
content or the new content.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from printnanny_sync.exceptions import PersistError

logger = logging.getLogger(__name__)


def _fsync_dir(dir_path: Path) -> None:
    try:
        dir_fd = os.open(str(dir_path), os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)
    except (OSError, AttributeError) as e:
        # O_DIRECTORY is not available everywhere.
        logger.warning(
            "Directory fsync failed; rename durability is not guaranteed",
            extra={"path": str(dir_path), "error": str(e)},
        )


def atomic_write_text(path: Path, text: str) -> None:
    """Replace `path` with `text` without exposing a partial file.

    Raises:
        PersistError: The temp file could not be written or renamed. The
            original file (if any) is left untouched.
    """
    dir_path = path.parent
    temp_path: Path | None = None
    try:
        dir_path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=dir_path,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as f:
            temp_path = Path(f.name)
            f.write(text)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, path)
        temp_path = None
    except OSError as e:
        raise PersistError(f"Failed to write {path}: {e}", path=path) from e
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                logger.warning("Failed to remove temp file", extra={"path": str(temp_path)})

    _fsync_dir(dir_path)


@asynccontextmanager
async def lock_dir(
    target: Path, *, retry_interval: float = 0.2, max_retries: int = 50
) -> AsyncIterator[Path]:
    """Hold an exclusive, cross-process lock on `target`.

    Usage:
        async with lock_dir(settings_file):
            ...  # write settings_file

    The lock is the directory `<target>.lock`, created with os.mkdir and
    removed on exit (normal or exceptional).

    Raises:
        PersistError: The lock could not be acquired within
            `max_retries * retry_interval` seconds.
    """
    lock_path = target.with_name(target.name + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    acquired = False
    for _attempt in range(max_retries):
        try:
            os.mkdir(lock_path)
            acquired = True
            break
        except FileExistsError:
            await asyncio.sleep(retry_interval)
        except OSError as e:
            raise PersistError(f"Failed to lock {target}: {e}", path=target) from e

    if not acquired:
        raise PersistError(
            f"Timed out waiting for lock {lock_path} after {max_retries} attempts. "
            f"Remove it manually if no other writer is running.",
            path=target,
        )

    logger.debug("Lock acquired", extra={"path": str(lock_path)})
    try:
        yield lock_path
    finally:
        try:
            os.rmdir(lock_path)
        except OSError as e:
            logger.warning(
                "Lock release failed; manual cleanup may be required",
                extra={"path": str(lock_path), "error": str(e)},
            )
