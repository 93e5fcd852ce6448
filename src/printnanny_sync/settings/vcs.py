"""Git-backed persistence for the settings file.

Every accepted edit is written atomically and committed, so the repository
history is the audit trail of settings changes.

Partial failure: if the commit fails after the file was replaced, the file
is NOT rolled back. Disk is then ahead of history; callers detect this with
`has_uncommitted_changes()` and re-commit.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from printnanny_sync.core.config import SyncConfig
from printnanny_sync.core.files import atomic_write_text, lock_dir
from printnanny_sync.exceptions import VcsError
from printnanny_sync.settings.models import GitSettings

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_KEY = "PrintNannySettings"


@dataclass(frozen=True, slots=True)
class GitResult:
    returncode: int
    stdout: str
    stderr: str


async def run_git(*args: str, cwd: Path, check: bool = True) -> GitResult:
    """Run `git <args>` in `cwd` without blocking the event loop.

    Raises:
        VcsError: git is missing, or (with `check`) exited non-zero.
    """
    command = ("git", *args)
    try:
        proc = await asyncio.to_thread(
            subprocess.run,
            list(command),
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise VcsError(f"Failed to run {' '.join(command)}: {e}", command=command) from e

    result = GitResult(returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
    if check and result.returncode != 0:
        raise VcsError(
            f"{' '.join(command)} failed ({result.returncode}): {result.stderr.strip()}",
            command=command,
            returncode=result.returncode,
            stderr=result.stderr,
        )
    return result


def default_commit_message(key: str | None = None, now: datetime | None = None) -> str:
    timestamp = (now or datetime.now(UTC)).isoformat()
    return f"{key or DEFAULT_MESSAGE_KEY} updated at {timestamp}"


class VersionedSettingsStore:
    """Write and commit the canonical settings file inside a git checkout."""

    def __init__(
        self,
        settings_file: Path,
        git: GitSettings,
        *,
        lock_retry_interval: float = 0.2,
        lock_max_retries: int = 50,
    ) -> None:
        self.settings_file = settings_file
        self.repo_dir = settings_file.parent
        self.git = git
        self._lock_retry_interval = lock_retry_interval
        self._lock_max_retries = lock_max_retries

    @classmethod
    def from_config(cls, config: SyncConfig, git: GitSettings) -> VersionedSettingsStore:
        return cls(
            config.settings_file,
            git,
            lock_retry_interval=config.lock_retry_interval,
            lock_max_retries=config.lock_max_retries,
        )

    def _identity_args(self) -> tuple[str, ...]:
        return ("-c", f"user.name={self.git.name}", "-c", f"user.email={self.git.email}")

    async def _is_checkout_of_remote(self, directory: Path) -> bool:
        toplevel = await run_git("rev-parse", "--show-toplevel", cwd=directory, check=False)
        if toplevel.returncode != 0:
            return False
        if Path(toplevel.stdout.strip()).resolve() != directory.resolve():
            return False
        origin = await run_git("config", "--get", "remote.origin.url", cwd=directory, check=False)
        return origin.returncode == 0 and origin.stdout.strip() == self.git.remote

    async def clone_into(self, directory: Path | None = None) -> Path:
        """Clone the settings repository into `directory` (default: the repo dir).

        Idempotent when `directory` is already a checkout of the same remote.

        Raises:
            VcsError: `directory` holds something else, or the clone failed.
        """
        directory = directory or self.repo_dir
        command = ("git", "clone", self.git.remote, str(directory))

        if directory.exists() and not directory.is_dir():
            raise VcsError(f"{directory} exists and is not a directory", command=command)

        if directory.exists() and any(directory.iterdir()):
            if await self._is_checkout_of_remote(directory):
                logger.info(
                    "Settings repository already cloned",
                    extra={"path": str(directory), "remote": self.git.remote},
                )
                return directory
            raise VcsError(
                f"{directory} is not empty and is not a clone of {self.git.remote}",
                command=command,
            )

        directory.parent.mkdir(parents=True, exist_ok=True)
        logger.info(
            "Cloning settings repository",
            extra={"path": str(directory), "remote": self.git.remote},
        )
        await run_git("clone", self.git.remote, str(directory), cwd=directory.parent)
        return directory

    async def head(self) -> str:
        result = await run_git("rev-parse", "HEAD", cwd=self.repo_dir)
        return result.stdout.strip()

    async def has_uncommitted_changes(self) -> bool:
        """True when the settings file on disk differs from the last commit."""

        result = await run_git(
            "status", "--porcelain", "--", self.settings_file.name, cwd=self.repo_dir
        )
        return bool(result.stdout.strip())

    async def save_and_commit(
        self, content: str, message: str | None = None, *, key: str | None = None
    ) -> str:
        """Atomically replace the settings file with `content` and commit it.

        Args:
            content: Canonical settings text.
            message: Commit message; defaults to "<key> updated at <timestamp>".
            key: Settings key named in the default message.

        Returns:
            The commit id at HEAD after the call.

        Raises:
            PersistError: The lock could not be taken or the write failed.
            VcsError: Staging or committing failed. The file is not rolled back.
        """
        message = message or default_commit_message(key)

        async with lock_dir(
            self.settings_file,
            retry_interval=self._lock_retry_interval,
            max_retries=self._lock_max_retries,
        ):
            atomic_write_text(self.settings_file, content)
            logger.info("Settings file written", extra={"path": str(self.settings_file)})

            filename = self.settings_file.name
            await run_git("add", "--", filename, cwd=self.repo_dir)

            staged = await run_git(
                "diff", "--cached", "--quiet", "--", filename, cwd=self.repo_dir, check=False
            )
            if staged.returncode == 0:
                logger.info("Settings unchanged; nothing to commit", extra={"file": filename})
                return await self.head()

            await run_git(
                *self._identity_args(), "commit", "-m", message, "--", filename, cwd=self.repo_dir
            )
            sha = await self.head()

        logger.info("Settings committed", extra={"commit": sha, "commit_message": message})
        return sha
