"""Exception hierarchy for printnanny-sync."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class PrintNannyError(Exception):
    """Base exception for all printnanny-sync errors."""


class ConfigError(PrintNannyError):
    """A settings layer is malformed or the merged settings fail validation."""


class KeyNotFound(PrintNannyError, LookupError):
    """A settings key is absent from every layer."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Settings key not found: {key}")


class UnsupportedFormatError(PrintNannyError):
    """A recognized settings format that has no serializer."""


class PersistError(PrintNannyError):
    """Writing a file owned by this package failed."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class VcsError(PrintNannyError):
    """A version-control operation (clone, stage, commit) failed."""

    def __init__(
        self,
        message: str,
        *,
        command: tuple[str, ...] = (),
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class ErrorCategory(str, Enum):
    TRANSPORT = "transport"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    AUTH = "auth"


class ServiceError(PrintNannyError):
    """Remote API failure, tagged by category rather than by endpoint."""

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.TRANSPORT,
        endpoint: str = "",
        status_code: int | None = None,
    ) -> None:
        self.category = category
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message)


class LicenseMismatch(ServiceError):
    """Cached license does not match the active license on the remote."""

    def __init__(self, *, expected: str, active: str) -> None:
        self.expected = expected
        self.active = active
        super().__init__(
            f"License fingerprint mismatch (expected {expected!r}, found {active!r})",
            category=ErrorCategory.VALIDATION,
        )


class SignupIncomplete(PrintNannyError):
    """A required cached record is absent and could not be hydrated.

    Raised lazily, when a caller needs the device (or license) slot that
    :meth:`printnanny_sync.service.ApiService.load_models` left empty.
    """

    def __init__(self, *, cache: Path) -> None:
        self.cache = cache
        super().__init__(f"Signup incomplete - failed to read from {cache}")
