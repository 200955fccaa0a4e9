# src/sittr/services/jobs/overdue_tasks.py
"""
Overdue Task Notification Job

Classifies tasks by due state and notifies the people responsible for every
task that is past due and not marked as done.

Recipients per task:
- the owner
- the sitter who claimed it
- Owner/Member users of its group, when the task requires verification

Each (recipient, task) pair is notified at most once, via the idempotency
key `task:<id>:overdue`. The returned count is the number of tasks that
produced at least one new notification on this run.

Schedule: Every 15 minutes
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from ...core.models import NotificationPayload, NotificationType, Task, TaskDueState
from ..notification_dispatcher import overdue_key
from .base import MaintenanceJob, run_candidates

logger = logging.getLogger(__name__)


def classify_task(
    task: Task,
    now: datetime,
    due_soon_window: Optional[timedelta] = None,
) -> TaskDueState:
    """
    Classify a task's due state at `now`.

    Overdue: not done and the deadline (due date, or range end) is strictly
    before now. Due soon: not done, not overdue, and the start (due date, or
    range start) lies in [now, now + window).
    """
    if task.marked_as_done:
        return TaskDueState.DONE
    if task.is_overdue(now):
        return TaskDueState.OVERDUE
    start = task.starts_at
    if due_soon_window is not None and start is not None and now <= start < now + due_soon_window:
        return TaskDueState.DUE_SOON
    return TaskDueState.ON_TIME


class OverdueTaskJob(MaintenanceJob):
    """Notify stakeholders of overdue tasks."""

    key = "notify_overdue_tasks"

    def execute(self) -> Dict[str, Any]:
        now = self.clock.now()
        tasks = [
            task for task in self.store.find_overdue_tasks(now)
            if classify_task(task, now) is TaskDueState.OVERDUE
        ]
        logger.info(f"Found {len(tasks)} overdue task(s)")

        summary = run_candidates(
            self.key,
            tasks,
            key=lambda task: task.id,
            work=self._notify,
            workers=self.config.job_workers,
        )
        if summary.failed:
            logger.warning(f"{summary.failed} overdue task(s) failed and will be retried next run")

        return {
            self.job_config.count_key: summary.triggered,
            "notificationsCreated": summary.created,
            "failedTasks": summary.failed,
        }

    def _notify(self, task: Task) -> int:
        payload = NotificationPayload(
            notification_type=NotificationType.OVERDUE_TASK,
            message=f'Task "{task.name}" is overdue!',
            task_id=task.id,
            pet_id=task.pet_id,
            group_id=task.group_id,
        )
        created = 0
        for user_id in self.store.get_task_recipients(task):
            if self.dispatcher.dispatch(user_id, payload, overdue_key(task.id)).created:
                created += 1
        return created


def notify_overdue_tasks(**deps) -> int:
    """Notify about overdue tasks; returns the number of newly notified tasks."""
    job = OverdueTaskJob(**deps)
    return job.execute()[job.job_config.count_key]
