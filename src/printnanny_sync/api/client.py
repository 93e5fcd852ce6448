"""Async PrintNanny Cloud API client.

`RemoteApi` is the narrow facade the rest of the package depends on;
`PrintNannyApiClient` implements it over aiohttp. Every failure surfaces as a
`ServiceError` tagged with an `ErrorCategory`. No call is retried here.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from printnanny_sync import __version__
from printnanny_sync.api.models import (
    CallbackTokenAuthRequest,
    DetailResponse,
    Device,
    EmailAuthRequest,
    License,
    Task,
    TaskRequest,
    TaskStatusRequest,
    TaskStatusType,
    TaskType,
    TokenResponse,
)
from printnanny_sync.exceptions import ErrorCategory, ServiceError

_logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

USER_AGENT = f"printnanny-sync/{__version__}"


class RemoteApi(Protocol):
    """Remote operations consumed by the cache, reporter and service.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`PrintNannyApiClient`) concrete.
    """

    async def fetch_device(self, device_id: int) -> Device:
        ...

    async def fetch_device_by_hostname(self, hostname: str) -> Device:
        ...

    async def fetch_active_license(self, device_id: int) -> License:
        ...

    async def activate_license(self, license_id: int) -> License:
        ...

    async def create_task(self, device_id: int, task_type: TaskType) -> Task:
        ...

    async def submit_task_status(
        self,
        device_id: int,
        task_id: int,
        status: TaskStatusType,
        detail: str | None = None,
        wiki_url: str | None = None,
    ) -> Task:
        ...


def category_for_status(status: int) -> ErrorCategory:
    """Map an HTTP error status to a failure category."""
    if status in (401, 403):
        return ErrorCategory.AUTH
    if status == 404:
        return ErrorCategory.NOT_FOUND
    if status in (400, 409, 422):
        return ErrorCategory.VALIDATION
    return ErrorCategory.TRANSPORT


class PrintNannyApiClient:
    """Async client for the PrintNanny Cloud API.

    Usage::

        async with PrintNannyApiClient(base_url, token=token) as api:
            device = await api.fetch_device_by_hostname("printnanny")
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._external_session = session is not None
        self._http_session = session

    async def __aenter__(self) -> PrintNannyApiClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._token:
            headers["authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(
        self, method: str, endpoint: str, *, payload: BaseModel | None = None
    ) -> Any:
        if self._http_session is None:
            raise RuntimeError("PrintNannyApiClient must be used as an async context manager")

        url = f"{self._base_url}{endpoint}"
        body = payload.model_dump(mode="json") if payload is not None else None

        _logger.debug("%s %s", method, url)

        try:
            async with self._http_session.request(
                method, url, json=body, headers=self._headers(), timeout=self._timeout
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise ServiceError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        category=category_for_status(resp.status),
                        endpoint=endpoint,
                        status_code=resp.status,
                    )
        except ServiceError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ServiceError(
                f"Request to {endpoint} failed: {exc!r}",
                category=ErrorCategory.TRANSPORT,
                endpoint=endpoint,
            ) from exc

        try:
            return json.loads(text) if text else {}
        except json.JSONDecodeError as exc:
            raise ServiceError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                category=ErrorCategory.TRANSPORT,
                endpoint=endpoint,
            ) from exc

    async def _request_model(
        self,
        method: str,
        endpoint: str,
        model: type[ModelT],
        *,
        payload: BaseModel | None = None,
    ) -> ModelT:
        data = await self._request(method, endpoint, payload=payload)
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ServiceError(
                f"Unexpected {model.__name__} payload from {endpoint}: {exc}",
                category=ErrorCategory.VALIDATION,
                endpoint=endpoint,
            ) from exc

    # auth

    async def auth_email_create(self, email: str) -> DetailResponse:
        return await self._request_model(
            "POST", "/api/auth/email/", DetailResponse, payload=EmailAuthRequest(email=email)
        )

    async def auth_token_validate(self, email: str, token: str) -> TokenResponse:
        return await self._request_model(
            "POST",
            "/api/auth/token/",
            TokenResponse,
            payload=CallbackTokenAuthRequest(email=email, token=token),
        )

    # devices

    async def fetch_device(self, device_id: int) -> Device:
        return await self._request_model("GET", f"/api/devices/{device_id}/", Device)

    async def fetch_device_by_hostname(self, hostname: str) -> Device:
        return await self._request_model("GET", f"/api/devices/hostname/{hostname}/", Device)

    # licenses

    async def fetch_active_license(self, device_id: int) -> License:
        return await self._request_model(
            "GET", f"/api/devices/{device_id}/active-license/", License
        )

    async def activate_license(self, license_id: int) -> License:
        return await self._request_model("POST", f"/api/licenses/{license_id}/activate/", License)

    # tasks

    async def create_task(self, device_id: int, task_type: TaskType) -> Task:
        request = TaskRequest(active=True, task_type=task_type, device=device_id)
        task = await self._request_model(
            "POST", f"/api/devices/{device_id}/tasks/", Task, payload=request
        )
        _logger.info("Created task", extra={"task_id": task.id, "task_type": task_type.value})
        return task

    async def submit_task_status(
        self,
        device_id: int,
        task_id: int,
        status: TaskStatusType,
        detail: str | None = None,
        wiki_url: str | None = None,
    ) -> Task:
        request = TaskStatusRequest(task=task_id, status=status, detail=detail, wiki_url=wiki_url)
        _logger.info(
            "Submitting task status",
            extra={"task_id": task_id, "device_id": device_id, "status": status.value},
        )
        return await self._request_model(
            "POST", f"/api/devices/{device_id}/tasks/{task_id}/status/", Task, payload=request
        )
