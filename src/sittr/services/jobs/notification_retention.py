# src/sittr/services/jobs/notification_retention.py
"""
Notification Retention Sweep

Deletes every notification created before now - retention horizon
(default 90 days), read or unread.

Schedule: Daily at 3 AM
"""

import logging
from typing import Any, Dict

from .base import MaintenanceJob

logger = logging.getLogger(__name__)


class NotificationRetentionJob(MaintenanceJob):
    key = "delete_old_notifications"

    def execute(self) -> Dict[str, Any]:
        cutoff = self.clock.now() - self.config.notification_retention
        deleted = self.store.delete_notifications_older_than(cutoff)
        logger.info(f"Deleted {deleted} notification(s) created before {cutoff.isoformat()}")
        return {self.job_config.count_key: deleted}


def delete_old_notifications(**deps) -> int:
    job = NotificationRetentionJob(**deps)
    return job.execute()[job.job_config.count_key]
