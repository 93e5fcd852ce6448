"""PrintNanny Cloud API models.

Records are remote-authoritative. Only identity and the fields this package
acts on are declared; any other field the API sends is kept (`extra="allow"`)
and survives a cache round trip unchanged.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    """Base for API response models."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class TaskStatusType(str, Enum):
    PENDING = "pending"
    STARTED = "started"
    FAILED = "failed"
    SUCCESS = "success"
    TIMEOUT = "timeout"


class TaskType(str, Enum):
    SYSTEM_CHECK = "system_check"
    SOFTWARE_UPDATE = "software_update"


class TaskStatus(ApiModel):
    """One immutable entry of a task's status history."""

    id: int
    task: int
    status: TaskStatusType
    detail: str | None = None
    wiki_url: str | None = None
    created_dt: datetime | None = None


class Task(ApiModel):
    id: int
    task_type: TaskType
    device: int
    active: bool = True
    last_status: TaskStatus | None = None

    @property
    def status(self) -> TaskStatusType | None:
        """Most recently appended status, if any."""

        return self.last_status.status if self.last_status is not None else None


class Device(ApiModel):
    id: int
    hostname: str = ""


class License(ApiModel):
    id: int
    device: int
    fingerprint: str
    activated: bool = False
    last_check_task: Task | None = None


class ApiCredentials(ApiModel):
    """Contents of `api_config.json`, written at signup."""

    base_path: str
    bearer_access_token: str


class TaskRequest(BaseModel):
    active: bool = True
    task_type: TaskType
    device: int


class TaskStatusRequest(BaseModel):
    task: int
    status: TaskStatusType
    detail: str | None = None
    wiki_url: str | None = None


class EmailAuthRequest(BaseModel):
    email: str


class CallbackTokenAuthRequest(BaseModel):
    email: str | None = None
    token: str
    mobile: str | None = None


class DetailResponse(ApiModel):
    detail: str = Field(default="")


class TokenResponse(ApiModel):
    token: str
