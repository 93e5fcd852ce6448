"""Task status reporting state machine.

A remote task moves through:

    (new) -> pending -> started -> failed | success | timeout

Terminal statuses have no exits. Each update is appended to the task's
remote history; nothing is ever removed or reordered.
"""

from __future__ import annotations

import logging
from enum import Enum

from printnanny_sync.api.client import RemoteApi
from printnanny_sync.api.models import Task, TaskStatus, TaskStatusType, TaskType

logger = logging.getLogger(__name__)

TERMINAL_STATUSES: frozenset[TaskStatusType] = frozenset(
    {TaskStatusType.FAILED, TaskStatusType.SUCCESS, TaskStatusType.TIMEOUT}
)

# `None` is a task with no status update yet.
ALLOWED_TRANSITIONS: dict[TaskStatusType | None, set[TaskStatusType]] = {
    None: {TaskStatusType.PENDING, TaskStatusType.STARTED},
    TaskStatusType.PENDING: {
        TaskStatusType.STARTED,
        TaskStatusType.FAILED,
        TaskStatusType.TIMEOUT,
    },
    TaskStatusType.STARTED: {
        TaskStatusType.FAILED,
        TaskStatusType.SUCCESS,
        TaskStatusType.TIMEOUT,
    },
    TaskStatusType.FAILED: set(),
    TaskStatusType.SUCCESS: set(),
    TaskStatusType.TIMEOUT: set(),
}


class IllegalTransitionError(ValueError):
    pass


def is_terminal(status: TaskStatusType | None) -> bool:
    return status in TERMINAL_STATUSES


def transition(*, current: TaskStatusType | None, to: TaskStatusType) -> TaskStatusType:
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if to not in allowed:
        name = current.value if current is not None else "new"
        raise IllegalTransitionError(f"Illegal transition: {name} -> {to.value}")
    return to


class StartAction(str, Enum):
    CREATE = "create"
    ACKNOWLEDGE = "acknowledge"
    RESUME = "resume"


def plan_start(last_task: Task | None) -> StartAction:
    """Decide how to begin work given the last known task for this check.

    - no task, inactive task, no status yet, or a terminal status: create a new task
    - pending: acknowledge it with a started update
    - started: keep going without another started update
    """
    if last_task is None or not last_task.active:
        return StartAction.CREATE
    status = last_task.status
    if status is TaskStatusType.STARTED:
        return StartAction.RESUME
    if status is TaskStatusType.PENDING:
        return StartAction.ACKNOWLEDGE
    return StartAction.CREATE


class TaskStatusReporter:
    """Drive one remote task through its statuses for a single device."""

    def __init__(
        self,
        api: RemoteApi,
        *,
        device_id: int,
        task_type: TaskType = TaskType.SYSTEM_CHECK,
    ) -> None:
        self._api = api
        self.device_id = device_id
        self.task_type = task_type
        self._task: Task | None = None
        self._status: TaskStatusType | None = None
        self._history: list[TaskStatus] = []

    @property
    def task(self) -> Task | None:
        return self._task

    @property
    def status(self) -> TaskStatusType | None:
        return self._status

    @property
    def history(self) -> tuple[TaskStatus, ...]:
        """Status updates submitted by this reporter, oldest first."""

        return tuple(self._history)

    @property
    def finished(self) -> bool:
        return is_terminal(self._status)

    async def start(
        self,
        last_task: Task | None,
        *,
        detail: str | None = None,
        wiki_url: str | None = None,
    ) -> Task:
        """Bring a task into the started state; see `plan_start`."""

        action = plan_start(last_task)
        logger.info(
            "Starting task",
            extra={
                "action": action.value,
                "task_type": self.task_type.value,
                "device_id": self.device_id,
                "last_task_id": last_task.id if last_task is not None else None,
            },
        )

        if action is StartAction.RESUME:
            assert last_task is not None
            self._task = last_task
            self._status = TaskStatusType.STARTED
            return last_task

        if action is StartAction.ACKNOWLEDGE:
            assert last_task is not None
            self._task = last_task
            self._status = TaskStatusType.PENDING
        else:
            self._task = await self._api.create_task(self.device_id, self.task_type)
            self._status = self._task.status

        return await self.submit(TaskStatusType.STARTED, detail=detail, wiki_url=wiki_url)

    async def submit(
        self,
        status: TaskStatusType,
        *,
        detail: str | None = None,
        wiki_url: str | None = None,
    ) -> Task:
        """Append one status update to the current task.

        Raises:
            RuntimeError: `start` has not been called.
            IllegalTransitionError: `status` is not reachable from the current status.
            ServiceError: The remote rejected or did not receive the update.
        """
        if self._task is None:
            raise RuntimeError("TaskStatusReporter.start() must be called before submit()")

        transition(current=self._status, to=status)

        task = await self._api.submit_task_status(
            self.device_id, self._task.id, status, detail, wiki_url
        )
        self._task = task
        self._status = status
        if task.last_status is not None:
            self._history.append(task.last_status)
        return task

    async def succeed(self, *, detail: str | None = None, wiki_url: str | None = None) -> Task:
        return await self.submit(TaskStatusType.SUCCESS, detail=detail, wiki_url=wiki_url)

    async def fail(self, *, detail: str | None = None, wiki_url: str | None = None) -> Task:
        return await self.submit(TaskStatusType.FAILED, detail=detail, wiki_url=wiki_url)

    async def time_out(self, *, detail: str | None = None, wiki_url: str | None = None) -> Task:
        return await self.submit(TaskStatusType.TIMEOUT, detail=detail, wiki_url=wiki_url)
