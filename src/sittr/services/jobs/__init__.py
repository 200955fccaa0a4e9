# src/sittr/services/jobs/__init__.py
"""
Background Jobs Module

Maintenance jobs run on an external cron trigger (or APScheduler):
- Expire invite codes (hourly)
- Overdue task notifications (every 15 minutes)
- Upcoming unclaimed task notifications (hourly)
- Pet birthday notifications (daily 8 AM)
- Notification retention sweep (daily 3 AM)
- Orphaned image reclaimer (hourly)

Notifications go through the NotificationDispatcher.
"""

from .base import (
    JOB_CONFIGS,
    CandidateOutcome,
    JobConfig,
    JobSummary,
    MaintenanceJob,
    resolve_job_name,
    run_all_jobs,
    run_job,
)
from .invite_codes import ExpireInviteCodesJob, expire_invite_codes
from .notification_retention import NotificationRetentionJob, delete_old_notifications
from .orphaned_images import OrphanedImageJob, delete_old_unlinked_images
from .overdue_tasks import OverdueTaskJob, classify_task, notify_overdue_tasks
from .pet_birthdays import PetBirthdayJob, notify_of_pet_birthdays
from .upcoming_tasks import UpcomingTaskJob, notify_upcoming_tasks

__all__ = [
    # Configuration
    "JobConfig",
    "JOB_CONFIGS",
    "CandidateOutcome",
    "JobSummary",
    "MaintenanceJob",
    # Job classes
    "ExpireInviteCodesJob",
    "OverdueTaskJob",
    "UpcomingTaskJob",
    "PetBirthdayJob",
    "NotificationRetentionJob",
    "OrphanedImageJob",
    # Operations
    "expire_invite_codes",
    "classify_task",
    "notify_overdue_tasks",
    "notify_upcoming_tasks",
    "notify_of_pet_birthdays",
    "delete_old_notifications",
    "delete_old_unlinked_images",
    # Runner functions
    "resolve_job_name",
    "run_job",
    "run_all_jobs",
]
