"""Device/license service: caches, remote facade and the license check.

If the device or license record can be neither read from its cache nor
hydrated from the remote, the slot stays empty and the service still
starts. Operations that need the record raise `SignupIncomplete` when they
find the slot empty.
"""

from __future__ import annotations

import logging
from pathlib import Path

from printnanny_sync.api.client import PrintNannyApiClient, RemoteApi
from printnanny_sync.api.models import (
    ApiCredentials,
    Device,
    License,
    Task,
    TaskStatusType,
    TaskType,
)
from printnanny_sync.core.config import SyncConfig
from printnanny_sync.exceptions import (
    LicenseMismatch,
    PersistError,
    ServiceError,
    SignupIncomplete,
)
from printnanny_sync.settings.models import ApiSettings
from printnanny_sync.state.cache import ModelCache
from printnanny_sync.workflow import messages
from printnanny_sync.workflow.task_status import TaskStatusReporter

logger = logging.getLogger(__name__)


def read_api_credentials(path: Path) -> ApiCredentials | None:
    """Read cached API credentials; `None` when absent or unreadable."""

    try:
        return ApiCredentials.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(
            "Failed to read API credentials; calling API as anonymous user",
            extra={"path": str(path), "error": str(e)},
        )
        return None


def api_client_from_config(config: SyncConfig, api: ApiSettings) -> PrintNannyApiClient:
    """Build an API client from cached credentials, else from settings."""

    credentials = read_api_credentials(config.api_config_json)
    if credentials is not None:
        return PrintNannyApiClient(
            credentials.base_path,
            token=credentials.bearer_access_token,
            timeout=config.api_timeout,
        )
    return PrintNannyApiClient(
        api.base_path, token=api.bearer_access_token, timeout=config.api_timeout
    )


class ApiService:
    """High-level, testable access to device and license state."""

    def __init__(self, api: RemoteApi, config: SyncConfig) -> None:
        self.api = api
        self.config = config
        self.device_cache: ModelCache[Device] = ModelCache(
            config.device_json, Device, self.device_retrieve_hostname
        )
        self.license_cache: ModelCache[License] = ModelCache(
            config.license_json, License, self.license_retrieve_active
        )
        self.device: Device | None = None
        self.license: License | None = None

    @classmethod
    async def create(cls, api: RemoteApi, config: SyncConfig) -> ApiService:
        service = cls(api, config)
        await service.load_models()
        return service

    async def load_models(self) -> None:
        """Fill the device and license slots; failures leave a slot empty."""

        try:
            self.device = await self.device_cache.load()
        except (ServiceError, PersistError, SignupIncomplete) as e:
            logger.error(
                "Failed to load device record",
                extra={"path": str(self.device_cache.path), "error": str(e)},
            )
            self.device = None

        try:
            self.license = await self.license_cache.load()
        except (ServiceError, PersistError, SignupIncomplete) as e:
            logger.error(
                "Failed to load license record",
                extra={"path": str(self.license_cache.path), "error": str(e)},
            )
            self.license = None

        if self.license is not None:
            logger.info(
                "License loaded",
                extra={"license_id": self.license.id, "fingerprint": self.license.fingerprint},
            )

    def require_device(self) -> Device:
        if self.device is None:
            raise SignupIncomplete(cache=self.device_cache.path)
        return self.device

    def require_license(self) -> License:
        if self.license is None:
            raise SignupIncomplete(cache=self.license_cache.path)
        return self.license

    # device

    async def device_retrieve(self) -> Device:
        return await self.api.fetch_device(self.require_device().id)

    async def device_retrieve_hostname(self) -> Device:
        """Fetch this device by hostname; the device cache hydrates through this."""

        return await self.api.fetch_device_by_hostname(self.config.resolved_hostname())

    # license

    async def license_retrieve_active(self) -> License:
        """Fetch the active license of the cached device."""

        return await self.api.fetch_active_license(self.require_device().id)

    async def license_activate(self, license_id: int) -> License:
        return await self.api.activate_license(license_id)

    # tasks

    async def task_create(
        self,
        task_type: TaskType,
        status: TaskStatusType | None = None,
        detail: str | None = None,
        wiki_url: str | None = None,
    ) -> Task:
        device = self.require_device()
        task = await self.api.create_task(device.id, task_type)
        if status is None:
            return task
        return await self.task_status_create(task.id, status, detail=detail, wiki_url=wiki_url)

    async def task_status_create(
        self,
        task_id: int,
        status: TaskStatusType,
        detail: str | None = None,
        wiki_url: str | None = None,
    ) -> Task:
        device = self.require_device()
        return await self.api.submit_task_status(device.id, task_id, status, detail, wiki_url)

    async def _cached_license(self) -> License:
        if self.license is not None:
            return self.license
        try:
            self.license = await self.license_cache.load()
        except (ServiceError, PersistError) as e:
            raise SignupIncomplete(cache=self.license_cache.path) from e
        return self.license

    async def license_check(self) -> License:
        """Verify the cached license against the remote active license.

        Reports progress on a system-check task: exactly one started update
        (unless the task is already started) and exactly one terminal update.

        Returns:
            The activated license, also written back to the license cache.

        Raises:
            SignupIncomplete: No device or license record is available.
            LicenseMismatch: The cached license id or fingerprint differs from
                the remote active license (reported as failed).
            ServiceError: A remote call failed.
        """
        device = self.require_device()
        cached = await self._cached_license()

        logger.info("Checking local license", extra={"fingerprint": cached.fingerprint})
        active = await self.license_retrieve_active()
        logger.info(
            "Retrieved active license",
            extra={"device_id": active.device, "fingerprint": active.fingerprint},
        )

        reporter = TaskStatusReporter(
            self.api, device_id=device.id, task_type=TaskType.SYSTEM_CHECK
        )
        await reporter.start(active.last_check_task, detail=messages.LICENSE_ACTIVATE_STARTED_MSG)

        if cached.id != active.id or cached.fingerprint != active.fingerprint:
            await reporter.fail(
                detail=messages.LICENSE_ACTIVATE_FAILED_MSG,
                wiki_url=messages.LICENSE_ACTIVATE_FAILED_HELP,
            )
            raise LicenseMismatch(expected=cached.fingerprint, active=active.fingerprint)

        try:
            activated = await self.license_activate(active.id)
        except ServiceError as e:
            await reporter.fail(detail=str(e), wiki_url=messages.LICENSE_ACTIVATE_FAILED_HELP)
            raise

        await reporter.succeed(
            detail=messages.LICENSE_ACTIVATE_SUCCESS_MSG,
            wiki_url=messages.LICENSE_ACTIVATE_SUCCESS_HELP,
        )

        self.license_cache.save(activated)
        self.license = activated
        return activated
