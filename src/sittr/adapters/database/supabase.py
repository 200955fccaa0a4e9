# src/sittr/adapters/database/supabase.py
"""
Supabase Entity Store

Implements EntityStorePort using Supabase (PostgREST) as the backend.
This is the production store.

PostgREST cannot express a few of the predicates directly, so:
- overdue tasks are fetched with one query per due mode and merged
- birthday matching goes through the `pets_with_birthday` RPC
- the job lease goes through the `acquire_job_lock` RPC
- notification insert-if-absent first claims a `notification_dispatches`
  marker, then upserts the row; both upserts use ignore_duplicates against
  the (user_id, idempotency_key) unique constraint
See migrations/supabase_schema.sql for the matching DDL.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from ...core.errors import StoreError
from ...core.models import (
    VISIBLE_ROLES,
    Image,
    ImageReconcileState,
    Notification,
    Pet,
    Task,
)
from ...core.ports.database import EntityStorePort
from ...infrastructure.supabase_client import get_supabase_client
from .rows import (
    format_timestamp,
    image_from_row,
    notification_from_row,
    notification_to_row,
    pet_from_row,
    task_from_row,
)

logger = logging.getLogger(__name__)


def _merge_by_id(*batches: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    merged: Dict[Any, Dict[str, Any]] = {}
    for batch in batches:
        for row in batch:
            merged.setdefault(row["id"], row)
    return list(merged.values())


class SupabaseEntityStore(EntityStorePort):
    """
    Supabase implementation of EntityStorePort.

    Uses the shared client from infrastructure.supabase_client unless one is
    passed in (tests pass a mock).
    """

    def __init__(self, client=None):
        self._client = client or get_supabase_client()
        if self._client is None:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
        logger.info("SupabaseEntityStore initialized")

    @property
    def client(self):
        """Get the underlying Supabase client."""
        return self._client

    @contextmanager
    def _operation(self, operation: str):
        """Wrap client and transport failures in StoreError."""
        try:
            yield
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Supabase {operation} failed: {e}")
            raise StoreError(operation, e) from e

    # =========================================================================
    # TASKS
    # =========================================================================

    def find_overdue_tasks(self, now: datetime) -> List[Task]:
        ts = format_timestamp(now)
        with self._operation("find_overdue_tasks"):
            due = self._client.table("tasks").select("*") \
                .eq("marked_as_done", False) \
                .eq("due_mode", True) \
                .lt("due_date", ts) \
                .execute()
            ranged = self._client.table("tasks").select("*") \
                .eq("marked_as_done", False) \
                .eq("due_mode", False) \
                .lt("range_end", ts) \
                .execute()
        return [task_from_row(r) for r in _merge_by_id(due.data or [], ranged.data or [])]

    def find_upcoming_unclaimed_tasks(self, now: datetime, until: datetime) -> List[Task]:
        start, end = format_timestamp(now), format_timestamp(until)
        with self._operation("find_upcoming_unclaimed_tasks"):
            due = self._client.table("tasks").select("*") \
                .eq("marked_as_done", False) \
                .is_("claimed_by", "null") \
                .eq("due_mode", True) \
                .gte("due_date", start) \
                .lt("due_date", end) \
                .execute()
            ranged = self._client.table("tasks").select("*") \
                .eq("marked_as_done", False) \
                .is_("claimed_by", "null") \
                .eq("due_mode", False) \
                .gte("range_start", start) \
                .lt("range_start", end) \
                .execute()
        return [task_from_row(r) for r in _merge_by_id(due.data or [], ranged.data or [])]

    def _members_of(self, group_ids: List[str]) -> List[str]:
        if not group_ids:
            return []
        result = self._client.table("group_members").select("user_id") \
            .in_("group_id", group_ids) \
            .in_("role", list(VISIBLE_ROLES)) \
            .execute()
        return list(dict.fromkeys(r["user_id"] for r in result.data or []))

    def get_group_member_ids(self, group_id: str) -> List[str]:
        with self._operation("get_group_member_ids"):
            return self._members_of([group_id])

    def get_task_recipients(self, task: Task) -> List[str]:
        recipients = [task.owner_id]
        if task.claimed_by:
            recipients.append(task.claimed_by)
        if task.requires_verification and task.group_id:
            recipients.extend(self.get_group_member_ids(task.group_id))
        return list(dict.fromkeys(recipients))

    # =========================================================================
    # PETS
    # =========================================================================

    def find_pets_with_birthday(self, month: int, day: int) -> List[Pet]:
        with self._operation("find_pets_with_birthday"):
            result = self._client.rpc(
                "pets_with_birthday", {"birth_month": month, "birth_day": day}
            ).execute()
        return [pet_from_row(r) for r in result.data or []]

    def get_pet_viewers(self, pet: Pet) -> List[str]:
        with self._operation("get_pet_viewers"):
            links = self._client.table("pets_to_groups").select("group_id") \
                .eq("pet_id", pet.id) \
                .execute()
            group_ids = [r["group_id"] for r in links.data or []]
            members = self._members_of(group_ids)
        return list(dict.fromkeys([pet.owner_id] + members))

    # =========================================================================
    # INVITE CODES
    # =========================================================================

    def delete_expired_invite_codes(self, now: datetime, ttl: timedelta) -> int:
        with self._operation("delete_expired_invite_codes"):
            aged = self._client.table("group_invite_codes").delete() \
                .lte("created_at", format_timestamp(now - ttl)) \
                .execute()
            expired = self._client.table("group_invite_codes").delete() \
                .lte("expires_at", format_timestamp(now)) \
                .execute()
            deleted = len(aged.data or []) + len(expired.data or [])

            # PostgREST cannot compare two columns; filter exhausted codes here
            capped = self._client.table("group_invite_codes").select("id, uses, max_uses") \
                .not_.is_("max_uses", "null") \
                .execute()
            exhausted = [r["id"] for r in capped.data or [] if r["uses"] >= r["max_uses"]]
            if exhausted:
                result = self._client.table("group_invite_codes").delete() \
                    .in_("id", exhausted) \
                    .execute()
                deleted += len(result.data or [])
        return deleted

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def insert_notification_if_absent(self, notification: Notification) -> Tuple[Notification, bool]:
        row = notification_to_row(notification)
        with self._operation("insert_notification_if_absent"):
            claimed = self._client.table("notification_dispatches").upsert(
                {
                    "user_id": notification.user_id,
                    "idempotency_key": notification.idempotency_key,
                    "dispatched_at": row["created_at"],
                },
                on_conflict="user_id,idempotency_key",
                ignore_duplicates=True,
            ).execute()
            if claimed.data:
                result = self._client.table("notifications").upsert(
                    row,
                    on_conflict="user_id,idempotency_key",
                    ignore_duplicates=True,
                ).execute()
                if result.data:
                    return notification_from_row(result.data[0]), True
            existing = self._client.table("notifications").select("*") \
                .eq("user_id", notification.user_id) \
                .eq("idempotency_key", notification.idempotency_key) \
                .limit(1) \
                .execute()
        if not existing.data:
            # dispatched earlier, row since removed by retention
            return notification, False
        return notification_from_row(existing.data[0]), False

    def delete_notifications_older_than(self, cutoff: datetime) -> int:
        with self._operation("delete_notifications_older_than"):
            result = self._client.table("notifications").delete() \
                .lt("created_at", format_timestamp(cutoff)) \
                .execute()
        return len(result.data or [])

    # =========================================================================
    # IMAGES
    # =========================================================================

    def find_orphaned_images(self, cutoff: datetime) -> List[Image]:
        with self._operation("find_orphaned_images"):
            unlinked = self._client.table("images").select("*") \
                .is_("task_id", "null") \
                .is_("pet_id", "null") \
                .lt("created_at", format_timestamp(cutoff)) \
                .execute()
            flagged = self._client.table("images").select("*") \
                .eq("reconcile_state", ImageReconcileState.STORAGE_DELETED.value) \
                .execute()
        return [image_from_row(r) for r in _merge_by_id(unlinked.data or [], flagged.data or [])]

    def delete_image_row(self, image_id: str) -> bool:
        with self._operation("delete_image_row"):
            result = self._client.table("images").delete().eq("id", image_id).execute()
        return bool(result.data)

    def flag_image_inconsistent(self, image_id: str) -> None:
        with self._operation("flag_image_inconsistent"):
            self._client.table("images") \
                .update({"reconcile_state": ImageReconcileState.STORAGE_DELETED.value}) \
                .eq("id", image_id) \
                .execute()

    # =========================================================================
    # JOB LEASES
    # =========================================================================

    def acquire_job_lock(self, job_name: str, owner: str, now: datetime, ttl: timedelta) -> bool:
        with self._operation("acquire_job_lock"):
            result = self._client.rpc("acquire_job_lock", {
                "p_job_name": job_name,
                "p_owner": owner,
                "p_now": format_timestamp(now),
                "p_expires_at": format_timestamp(now + ttl),
            }).execute()
        return bool(_scalar(result.data))

    def release_job_lock(self, job_name: str, owner: str) -> None:
        with self._operation("release_job_lock"):
            self._client.table("job_locks").delete() \
                .eq("job_name", job_name) \
                .eq("owner", owner) \
                .execute()


def _scalar(data: Any) -> Optional[Any]:
    """Scalar RPC results come back bare or wrapped in a one-element list."""
    if isinstance(data, list):
        return data[0] if data else None
    return data
