# src/sittr/adapters/database/rows.py
"""
Row <-> model conversion shared by the store adapters.

Timestamps are written as fixed-width UTC strings so that lexical order
matches chronological order in SQLite; Postgres hands back ISO 8601 with an
offset, which parse_timestamp also accepts.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from ...core.clock import ensure_utc
from ...core.models import (
    DateRange,
    GroupInviteCode,
    Image,
    ImageReconcileState,
    Notification,
    NotificationType,
    Pet,
    Task,
)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# =============================================================================
# TASKS
# =============================================================================

def task_from_row(row: Dict[str, Any]) -> Task:
    start = parse_timestamp(row.get("range_start"))
    end = parse_timestamp(row.get("range_end"))
    return Task(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        name=row.get("name") or "",
        due_mode=bool(row.get("due_mode", True)),
        due_date=parse_timestamp(row.get("due_date")),
        date_range=DateRange(start, end) if start and end else None,
        pet_id=row.get("pet_id"),
        group_id=row.get("group_id"),
        requires_verification=bool(row.get("requires_verification")),
        marked_as_done=bool(row.get("marked_as_done")),
        marked_as_done_by=row.get("marked_as_done_by"),
        claimed_by=row.get("claimed_by"),
        created_at=parse_timestamp(row.get("created_at")),
    )


def task_to_row(task: Task) -> Dict[str, Any]:
    return {
        "id": task.id,
        "owner_id": task.owner_id,
        "name": task.name,
        "due_mode": task.due_mode,
        "due_date": format_timestamp(task.due_date),
        "range_start": format_timestamp(task.date_range.start) if task.date_range else None,
        "range_end": format_timestamp(task.date_range.end) if task.date_range else None,
        "pet_id": task.pet_id,
        "group_id": task.group_id,
        "requires_verification": task.requires_verification,
        "marked_as_done": task.marked_as_done,
        "marked_as_done_by": task.marked_as_done_by,
        "claimed_by": task.claimed_by,
        "created_at": format_timestamp(task.created_at),
    }


# =============================================================================
# PETS / INVITE CODES / IMAGES
# =============================================================================

def pet_from_row(row: Dict[str, Any]) -> Pet:
    return Pet(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        name=row.get("name") or "",
        dob=parse_date(row.get("dob")),
    )


def pet_to_row(pet: Pet) -> Dict[str, Any]:
    return {
        "id": pet.id,
        "owner_id": pet.owner_id,
        "name": pet.name,
        "dob": pet.dob.isoformat() if pet.dob else None,
    }


def invite_code_to_row(code: GroupInviteCode) -> Dict[str, Any]:
    return {
        "id": code.id,
        "group_id": code.group_id,
        "code": code.code,
        "created_at": format_timestamp(code.created_at),
        "expires_at": format_timestamp(code.expires_at),
        "uses": code.uses,
        "max_uses": code.max_uses,
    }



def image_from_row(row: Dict[str, Any]) -> Image:
    state = row.get("reconcile_state")
    return Image(
        id=str(row["id"]),
        file_key=row["file_key"],
        created_at=parse_timestamp(row["created_at"]),
        task_id=row.get("task_id"),
        pet_id=row.get("pet_id"),
        uploader_id=row.get("uploader_id"),
        reconcile_state=ImageReconcileState(state) if state else None,
    )


def image_to_row(image: Image) -> Dict[str, Any]:
    return {
        "id": image.id,
        "file_key": image.file_key,
        "created_at": format_timestamp(image.created_at),
        "task_id": image.task_id,
        "pet_id": image.pet_id,
        "uploader_id": image.uploader_id,
        "reconcile_state": image.reconcile_state.value if image.reconcile_state else None,
    }


# =============================================================================
# NOTIFICATIONS
# =============================================================================

def notification_from_row(row: Dict[str, Any]) -> Notification:
    return Notification(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        notification_type=NotificationType(row["notification_type"]),
        message=row.get("message") or "",
        idempotency_key=row["idempotency_key"],
        associated_task_id=row.get("associated_task_id"),
        associated_pet_id=row.get("associated_pet_id"),
        associated_group_id=row.get("associated_group_id"),
        read=bool(row.get("read")),
        created_at=parse_timestamp(row.get("created_at")),
    )


def notification_to_row(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "notification_type": notification.notification_type.value,
        "message": notification.message,
        "idempotency_key": notification.idempotency_key,
        "associated_task_id": notification.associated_task_id,
        "associated_pet_id": notification.associated_pet_id,
        "associated_group_id": notification.associated_group_id,
        "read": notification.read,
        "created_at": format_timestamp(notification.created_at),
    }
