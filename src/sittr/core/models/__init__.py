# src/sittr/core/models/__init__.py
"""
Domain models for the maintenance jobs.

These are pure data classes representing the rows the jobs read from the
entity store. They are database-agnostic; adapters convert rows to and from
them. All datetimes are timezone-aware UTC.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional


class GroupRole(str, Enum):
    """Membership roles inside a sitting group."""
    OWNER = "Owner"
    MEMBER = "Member"
    PENDING = "Pending"


# Roles that can see the group's pets and tasks
VISIBLE_ROLES = (GroupRole.OWNER.value, GroupRole.MEMBER.value)


class NotificationType(str, Enum):
    """Kinds of notifications produced by the maintenance jobs."""
    OVERDUE_TASK = "Overdue Task"
    UPCOMING_UNCLAIMED_TASK = "Upcoming Unclaimed Task"
    PET_BIRTHDAY = "Pet Birthday"


class TaskDueState(str, Enum):
    """Derived due state of a task at a given instant."""
    DONE = "done"
    ON_TIME = "on_time"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"


class ImageReconcileState(str, Enum):
    """Marker left on an image row whose storage object is already gone."""
    STORAGE_DELETED = "storage_deleted"


@dataclass(frozen=True)
class DateRange:
    """Inclusive start / end of a range-mode task."""
    start: datetime
    end: datetime


@dataclass
class Task:
    """
    Task entity.

    Exactly one of due_date / date_range is meaningful, selected by due_mode.
    """
    id: str
    owner_id: str
    name: str = ""
    due_mode: bool = True
    due_date: Optional[datetime] = None
    date_range: Optional[DateRange] = None
    pet_id: Optional[str] = None
    group_id: Optional[str] = None
    requires_verification: bool = False
    marked_as_done: bool = False
    marked_as_done_by: Optional[str] = None
    claimed_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def deadline(self) -> Optional[datetime]:
        """The instant after which the task is overdue."""
        if self.due_mode:
            return self.due_date
        return self.date_range.end if self.date_range else None

    @property
    def starts_at(self) -> Optional[datetime]:
        """The instant the task becomes actionable (due date or range start)."""
        if self.due_mode:
            return self.due_date
        return self.date_range.start if self.date_range else None

    def is_overdue(self, now: datetime) -> bool:
        deadline = self.deadline
        return not self.marked_as_done and deadline is not None and deadline < now


@dataclass
class GroupInviteCode:
    """Invite code for joining a group; valid for `ttl` from creation."""
    id: str
    group_id: str
    code: str
    created_at: datetime
    ttl: timedelta
    uses: int = 0
    max_uses: Optional[int] = None

    @property
    def expires_at(self) -> datetime:
        return self.created_at + self.ttl

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.uses >= self.max_uses


@dataclass(frozen=True)
class NotificationPayload:
    """What a producer wants to tell a recipient."""
    notification_type: NotificationType
    message: str
    task_id: Optional[str] = None
    pet_id: Optional[str] = None
    group_id: Optional[str] = None


@dataclass
class Notification:
    """Notification row owned by exactly one recipient."""
    user_id: str
    notification_type: NotificationType
    message: str
    idempotency_key: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    associated_task_id: Optional[str] = None
    associated_pet_id: Optional[str] = None
    associated_group_id: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(
        cls,
        user_id: str,
        payload: NotificationPayload,
        idempotency_key: str,
        created_at: datetime,
    ) -> "Notification":
        return cls(
            user_id=user_id,
            notification_type=payload.notification_type,
            message=payload.message,
            idempotency_key=idempotency_key,
            associated_task_id=payload.task_id,
            associated_pet_id=payload.pet_id,
            associated_group_id=payload.group_id,
            created_at=created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses and logs."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "notification_type": self.notification_type.value,
            "message": self.message,
            "idempotency_key": self.idempotency_key,
            "associated_task_id": self.associated_task_id,
            "associated_pet_id": self.associated_pet_id,
            "associated_group_id": self.associated_group_id,
            "read": self.read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class Image:
    """Uploaded image metadata; the bytes live in object storage under file_key."""
    id: str
    file_key: str
    created_at: datetime
    task_id: Optional[str] = None
    pet_id: Optional[str] = None
    uploader_id: Optional[str] = None
    reconcile_state: Optional[ImageReconcileState] = None

    @property
    def is_linked(self) -> bool:
        return self.task_id is not None or self.pet_id is not None


@dataclass
class Pet:
    """Pet entity; only the fields the birthday job needs."""
    id: str
    owner_id: str
    name: str
    dob: Optional[date] = None


__all__ = [
    "GroupRole",
    "VISIBLE_ROLES",
    "NotificationType",
    "TaskDueState",
    "ImageReconcileState",
    "DateRange",
    "Task",
    "GroupInviteCode",
    "NotificationPayload",
    "Notification",
    "Image",
    "Pet",
]
