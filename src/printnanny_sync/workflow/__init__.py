"""Remote task status reporting."""

from printnanny_sync.workflow.task_status import (
    IllegalTransitionError,
    StartAction,
    TaskStatusReporter,
    plan_start,
)

__all__ = ["IllegalTransitionError", "StartAction", "TaskStatusReporter", "plan_start"]
