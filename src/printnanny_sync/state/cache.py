"""Read-through JSON caches for remote-authoritative records.

One `ModelCache` per record kind (device, license). The local file is trusted
as-is on read; it is only replaced when the record is hydrated from the
remote (overwrite, never merge) and is never deleted here.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel

from printnanny_sync.core.files import atomic_write_text
from printnanny_sync.exceptions import ErrorCategory, PrintNannyError, ServiceError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class ModelCache(Generic[RecordT]):
    """JSON-file backed cache that hydrates from the remote on a miss."""

    def __init__(
        self,
        path: Path,
        model: type[RecordT],
        fetch: Callable[[], Awaitable[RecordT]],
    ) -> None:
        self.path = path
        self.model = model
        self._fetch = fetch

    @property
    def kind(self) -> str:
        return self.model.__name__

    def read(self) -> RecordT:
        """Read the cached record from disk.

        Raises:
            OSError: The file is missing or unreadable.
            ValueError: The file is not valid JSON for the model.
        """
        return self.model.model_validate_json(self.path.read_text(encoding="utf-8"))

    def save(self, record: RecordT) -> None:
        """Overwrite the cache file with `record` (atomic)."""

        atomic_write_text(self.path, record.model_dump_json(indent=2) + "\n")
        logger.info("Saved cached record", extra={"kind": self.kind, "path": str(self.path)})

    async def load(self) -> RecordT:
        """Return the cached record, hydrating from the remote if unreadable."""

        try:
            record = self.read()
        except (OSError, ValueError) as e:
            logger.warning(
                "Failed to read cached record; loading from remote",
                extra={"kind": self.kind, "path": str(self.path), "error": str(e)},
            )
            return await self.hydrate()

        logger.debug("Loaded cached record", extra={"kind": self.kind, "path": str(self.path)})
        return record

    async def hydrate(self) -> RecordT:
        """Fetch the record from the remote and overwrite the cache file.

        Raises:
            ServiceError: The fetch failed; the cache file is untouched.
            SignupIncomplete: The fetch needs a record that is not cached yet.
            PersistError: The fetched record could not be written.
        """
        try:
            record = await self._fetch()
        except PrintNannyError:
            raise
        except Exception as e:
            raise ServiceError(
                f"Failed to fetch {self.kind}: {e!r}",
                category=ErrorCategory.TRANSPORT,
            ) from e

        self.save(record)
        return record
