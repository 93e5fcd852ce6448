"""PrintNanny Cloud API facade and models."""

from printnanny_sync.api.client import PrintNannyApiClient, RemoteApi
from printnanny_sync.api.models import Device, License, Task, TaskStatus, TaskStatusType, TaskType

__all__ = [
    "Device",
    "License",
    "PrintNannyApiClient",
    "RemoteApi",
    "Task",
    "TaskStatus",
    "TaskStatusType",
    "TaskType",
]
