# src/sittr/core/ports/database.py
"""
Entity Store Port Interface

Abstract interface for the reads and writes the maintenance jobs perform.
Implementations:
- SQLiteEntityStore (local development, tests)
- SupabaseEntityStore (production)

Every method raises StoreError when the backend fails. Methods that delete
return the number of rows removed.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Tuple

from ..models import Image, Notification, Pet, Task


class EntityStorePort(ABC):
    """
    Abstract port interface for the entity store.

    All store adapters must implement this interface.
    """

    # =========================================================================
    # TASKS
    # =========================================================================

    @abstractmethod
    def find_overdue_tasks(self, now: datetime) -> List[Task]:
        """
        Tasks not marked as done whose deadline is strictly before `now`.

        The deadline is due_date for due-mode tasks and date_range.end for
        range-mode tasks.
        """
        pass

    @abstractmethod
    def find_upcoming_unclaimed_tasks(self, now: datetime, until: datetime) -> List[Task]:
        """Unclaimed, not-done tasks with a start in [now, until)."""
        pass

    @abstractmethod
    def get_task_recipients(self, task: Task) -> List[str]:
        """
        Users to tell about an overdue task.

        Owner and claimer, plus Owner/Member users of the task's group when
        the task requires verification. Distinct, order not guaranteed.
        """
        pass

    @abstractmethod
    def get_group_member_ids(self, group_id: str) -> List[str]:
        """Distinct Owner/Member users of a group (Pending excluded)."""
        pass

    # =========================================================================
    # PETS
    # =========================================================================

    @abstractmethod
    def find_pets_with_birthday(self, month: int, day: int) -> List[Pet]:
        """Pets whose date of birth falls on month/day in any year."""
        pass

    @abstractmethod
    def get_pet_viewers(self, pet: Pet) -> List[str]:
        """Owner plus Owner/Member users of every group the pet is shared with."""
        pass

    # =========================================================================
    # INVITE CODES
    # =========================================================================

    @abstractmethod
    def delete_expired_invite_codes(self, now: datetime, ttl: timedelta) -> int:
        """
        Delete codes with created_at + ttl <= now, expires_at <= now, or
        uses >= max_uses.
        """
        pass

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    @abstractmethod
    def insert_notification_if_absent(self, notification: Notification) -> Tuple[Notification, bool]:
        """
        Atomically insert unless (user_id, idempotency_key) was ever
        dispatched.

        The key is first claimed in a dispatch marker table that retention
        never touches, so a key stays used after its notification row has
        been swept.

        Returns:
            (row, created) where row is the stored notification (the new one,
            or the pre-existing one when created is False). When the earlier
            row is gone, row is the unsaved candidate.
        """
        pass

    @abstractmethod
    def delete_notifications_older_than(self, cutoff: datetime) -> int:
        """Delete notifications with created_at strictly before `cutoff`."""
        pass

    # =========================================================================
    # IMAGES
    # =========================================================================

    @abstractmethod
    def find_orphaned_images(self, cutoff: datetime) -> List[Image]:
        """
        Images with no task and no pet link created strictly before `cutoff`,
        plus any image already flagged as storage_deleted regardless of age.
        """
        pass

    @abstractmethod
    def delete_image_row(self, image_id: str) -> bool:
        """Delete an image metadata row. True if a row was removed."""
        pass

    @abstractmethod
    def flag_image_inconsistent(self, image_id: str) -> None:
        """Mark an image row as having no storage object behind it."""
        pass

    # =========================================================================
    # JOB LEASES
    # =========================================================================

    @abstractmethod
    def acquire_job_lock(self, job_name: str, owner: str, now: datetime, ttl: timedelta) -> bool:
        """
        Take the lease for `job_name` if it is free or expired.

        Returns:
            True if `owner` now holds the lease
        """
        pass

    @abstractmethod
    def release_job_lock(self, job_name: str, owner: str) -> None:
        """Release the lease if `owner` still holds it."""
        pass
