# src/sittr/services/jobs/upcoming_tasks.py
"""
Upcoming Unclaimed Task Job

Tells every Owner/Member of a task's group when an unclaimed task starts
within the due-soon window (default 6 hours), so someone picks it up.
Tasks without a group have nobody to tell and are skipped.

Schedule: Hourly at :30
"""

import logging
from typing import Any, Dict

from ...core.models import NotificationPayload, NotificationType, Task, TaskDueState
from ..notification_dispatcher import due_soon_key
from .base import MaintenanceJob, run_candidates
from .overdue_tasks import classify_task

logger = logging.getLogger(__name__)


class UpcomingTaskJob(MaintenanceJob):
    """Notify group members about unclaimed tasks that start soon."""

    key = "notify_upcoming_tasks"

    def execute(self) -> Dict[str, Any]:
        now = self.clock.now()
        window = self.config.due_soon_window
        tasks = [
            task for task in self.store.find_upcoming_unclaimed_tasks(now, now + window)
            if task.group_id and classify_task(task, now, window) is TaskDueState.DUE_SOON
        ]
        logger.info(f"Found {len(tasks)} unclaimed task(s) due within {window}")

        summary = run_candidates(
            self.key,
            tasks,
            key=lambda task: task.id,
            work=self._notify,
            workers=self.config.job_workers,
        )
        return {
            self.job_config.count_key: summary.triggered,
            "notificationsCreated": summary.created,
            "failedTasks": summary.failed,
        }

    def _notify(self, task: Task) -> int:
        payload = NotificationPayload(
            notification_type=NotificationType.UPCOMING_UNCLAIMED_TASK,
            message=f'Task "{task.name}" is due soon!',
            task_id=task.id,
            pet_id=task.pet_id,
            group_id=task.group_id,
        )
        created = 0
        for user_id in self.store.get_group_member_ids(task.group_id):
            if self.dispatcher.dispatch(user_id, payload, due_soon_key(task.id)).created:
                created += 1
        return created


def notify_upcoming_tasks(**deps) -> int:
    job = UpcomingTaskJob(**deps)
    return job.execute()[job.job_config.count_key]
