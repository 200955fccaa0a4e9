# src/sittr/adapters/database/sqlite.py
"""
SQLite Entity Store

Implements EntityStorePort using SQLite as the backend.
This adapter is for local development and tests.

Each call opens its own connection so the job worker threads never share
one. Notification de-duplication relies on UNIQUE(user_id, idempotency_key)
with INSERT ... ON CONFLICT DO NOTHING, applied first to the
notification_dispatches markers (which retention never deletes) and then to
the notification row.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from ...core.errors import StoreError
from ...core.models import (
    VISIBLE_ROLES,
    GroupInviteCode,
    GroupRole,
    Image,
    ImageReconcileState,
    Notification,
    Pet,
    Task,
)
from ...core.ports.database import EntityStorePort
from .rows import (
    format_timestamp,
    image_from_row,
    image_to_row,
    invite_code_to_row,
    notification_from_row,
    notification_to_row,
    pet_from_row,
    pet_to_row,
    task_from_row,
    task_to_row,
)

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    due_mode INTEGER NOT NULL DEFAULT 1,
    due_date TEXT,
    range_start TEXT,
    range_end TEXT,
    pet_id TEXT,
    group_id TEXT,
    requires_verification INTEGER NOT NULL DEFAULT 0,
    marked_as_done INTEGER NOT NULL DEFAULT 0,
    marked_as_done_by TEXT,
    claimed_by TEXT,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS group_members (
    group_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'Member',
    PRIMARY KEY (group_id, user_id)
);

CREATE TABLE IF NOT EXISTS pets (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    dob TEXT
);

CREATE TABLE IF NOT EXISTS pets_to_groups (
    pet_id TEXT NOT NULL,
    group_id TEXT NOT NULL,
    PRIMARY KEY (pet_id, group_id)
);

CREATE TABLE IF NOT EXISTS group_invite_codes (
    id TEXT PRIMARY KEY,
    group_id TEXT NOT NULL,
    code TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    uses INTEGER NOT NULL DEFAULT 0,
    max_uses INTEGER
);

CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    notification_type TEXT NOT NULL,
    message TEXT NOT NULL DEFAULT '',
    idempotency_key TEXT NOT NULL,
    associated_task_id TEXT,
    associated_pet_id TEXT,
    associated_group_id TEXT,
    read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    UNIQUE (user_id, idempotency_key)
);

CREATE INDEX IF NOT EXISTS idx_notifications_created_at ON notifications (created_at);

CREATE TABLE IF NOT EXISTS notification_dispatches (
    user_id TEXT NOT NULL,
    idempotency_key TEXT NOT NULL,
    dispatched_at TEXT NOT NULL,
    PRIMARY KEY (user_id, idempotency_key)
);

CREATE TABLE IF NOT EXISTS images (
    id TEXT PRIMARY KEY,
    file_key TEXT NOT NULL,
    task_id TEXT,
    pet_id TEXT,
    uploader_id TEXT,
    created_at TEXT NOT NULL,
    reconcile_state TEXT
);

CREATE TABLE IF NOT EXISTS job_locks (
    job_name TEXT PRIMARY KEY,
    owner TEXT NOT NULL,
    expires_at TEXT NOT NULL
);
"""

_ROLE_PLACEHOLDERS = ", ".join("?" for _ in VISIBLE_ROLES)


class SQLiteEntityStore(EntityStorePort):
    """
    SQLite implementation of EntityStorePort.

    Besides the port methods it carries a few generic helpers (insert,
    get_all, count) and typed save_* methods used to seed local databases.
    """

    def __init__(self, db_path: str = "sittr.db", timeout: float = 30.0):
        """
        Initialize SQLite store and create the schema if needed.

        Args:
            db_path: Path to the SQLite database file
            timeout: Seconds a writer waits on a locked database
        """
        self._db_path = db_path
        self._timeout = timeout
        self.init_schema()
        logger.info(f"SQLiteEntityStore initialized with {db_path}")

    @contextmanager
    def _connect(self, operation: str):
        """Open a connection, commit on success, wrap driver errors in StoreError."""
        conn = None
        try:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout)
            conn.row_factory = sqlite3.Row
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            if conn is not None:
                conn.rollback()
            logger.error(f"SQLite {operation} failed: {e}")
            raise StoreError(operation, e) from e
        finally:
            if conn is not None:
                conn.close()

    def init_schema(self):
        with self._connect("init_schema") as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)

    # =========================================================================
    # GENERIC HELPERS
    # =========================================================================

    def insert(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it."""
        columns = ", ".join(data.keys())
        placeholders = ", ".join("?" for _ in data)
        with self._connect(f"insert {table}") as conn:
            conn.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                list(data.values()),
            )
        return data

    def get_all(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Get all rows from a table with optional equality filters."""
        query = f"SELECT * FROM {table}"
        params: List[Any] = []
        if filters:
            conditions = []
            for key, value in filters.items():
                if value is None:
                    conditions.append(f"{key} IS NULL")
                else:
                    conditions.append(f"{key} = ?")
                    params.append(value)
            query += " WHERE " + " AND ".join(conditions)
        if order_by:
            query += f" ORDER BY {order_by}"
        with self._connect(f"get_all {table}") as conn:
            return [dict(row) for row in conn.execute(query, params).fetchall()]

    def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        return len(self.get_all(table, filters))

    def save_task(self, task: Task) -> Task:
        self.insert("tasks", task_to_row(task))
        return task

    def save_pet(self, pet: Pet) -> Pet:
        self.insert("pets", pet_to_row(pet))
        return pet

    def save_invite_code(self, code: GroupInviteCode) -> GroupInviteCode:
        self.insert("group_invite_codes", invite_code_to_row(code))
        return code

    def save_image(self, image: Image) -> Image:
        self.insert("images", image_to_row(image))
        return image

    def save_notification(self, notification: Notification) -> Notification:
        self.insert("notifications", notification_to_row(notification))
        return notification

    def add_group_member(self, group_id: str, user_id: str, role: GroupRole = GroupRole.MEMBER):
        self.insert("group_members", {"group_id": group_id, "user_id": user_id, "role": role.value})

    def share_pet_with_group(self, pet_id: str, group_id: str):
        self.insert("pets_to_groups", {"pet_id": pet_id, "group_id": group_id})

    def list_notifications(self, user_id: Optional[str] = None) -> List[Notification]:
        filters = {"user_id": user_id} if user_id else None
        return [notification_from_row(r) for r in self.get_all("notifications", filters, "created_at")]

    def list_images(self) -> List[Image]:
        return [image_from_row(r) for r in self.get_all("images", order_by="created_at")]

    # =========================================================================
    # TASKS
    # =========================================================================

    def find_overdue_tasks(self, now: datetime) -> List[Task]:
        ts = format_timestamp(now)
        with self._connect("find_overdue_tasks") as conn:
            rows = conn.execute(
                """
                SELECT * FROM tasks
                WHERE marked_as_done = 0
                  AND ((due_mode = 1 AND due_date IS NOT NULL AND due_date < ?)
                    OR (due_mode = 0 AND range_end IS NOT NULL AND range_end < ?))
                """,
                (ts, ts),
            ).fetchall()
        return [task_from_row(dict(r)) for r in rows]

    def find_upcoming_unclaimed_tasks(self, now: datetime, until: datetime) -> List[Task]:
        start, end = format_timestamp(now), format_timestamp(until)
        with self._connect("find_upcoming_unclaimed_tasks") as conn:
            rows = conn.execute(
                """
                SELECT * FROM tasks
                WHERE marked_as_done = 0
                  AND claimed_by IS NULL
                  AND ((due_mode = 1 AND due_date >= ? AND due_date < ?)
                    OR (due_mode = 0 AND range_start >= ? AND range_start < ?))
                """,
                (start, end, start, end),
            ).fetchall()
        return [task_from_row(dict(r)) for r in rows]

    def get_group_member_ids(self, group_id: str) -> List[str]:
        with self._connect("get_group_member_ids") as conn:
            rows = conn.execute(
                f"SELECT DISTINCT user_id FROM group_members "
                f"WHERE group_id = ? AND role IN ({_ROLE_PLACEHOLDERS})",
                (group_id, *VISIBLE_ROLES),
            ).fetchall()
        return [r["user_id"] for r in rows]

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
        with self._connect("find_pets_with_birthday") as conn:
            rows = conn.execute(
                "SELECT * FROM pets WHERE dob IS NOT NULL "
                "AND CAST(substr(dob, 6, 2) AS INTEGER) = ? "
                "AND CAST(substr(dob, 9, 2) AS INTEGER) = ?",
                (month, day),
            ).fetchall()
        return [pet_from_row(dict(r)) for r in rows]

    def get_pet_viewers(self, pet: Pet) -> List[str]:
        with self._connect("get_pet_viewers") as conn:
            rows = conn.execute(
                f"""
                SELECT DISTINCT gm.user_id FROM pets_to_groups pg
                JOIN group_members gm ON gm.group_id = pg.group_id
                WHERE pg.pet_id = ? AND gm.role IN ({_ROLE_PLACEHOLDERS})
                """,
                (pet.id, *VISIBLE_ROLES),
            ).fetchall()
        return list(dict.fromkeys([pet.owner_id] + [r["user_id"] for r in rows]))

    # =========================================================================
    # INVITE CODES
    # =========================================================================

    def delete_expired_invite_codes(self, now: datetime, ttl: timedelta) -> int:
        with self._connect("delete_expired_invite_codes") as conn:
            cursor = conn.execute(
                "DELETE FROM group_invite_codes "
                "WHERE created_at <= ? OR expires_at <= ? "
                "OR (max_uses IS NOT NULL AND uses >= max_uses)",
                (format_timestamp(now - ttl), format_timestamp(now)),
            )
            return cursor.rowcount

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def insert_notification_if_absent(self, notification: Notification) -> Tuple[Notification, bool]:
        row = notification_to_row(notification)
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)
        with self._connect("insert_notification_if_absent") as conn:
            claimed = conn.execute(
                "INSERT INTO notification_dispatches (user_id, idempotency_key, dispatched_at) "
                "VALUES (?, ?, ?) ON CONFLICT (user_id, idempotency_key) DO NOTHING",
                (notification.user_id, notification.idempotency_key, row["created_at"]),
            ).rowcount == 1
            if claimed:
                cursor = conn.execute(
                    f"INSERT INTO notifications ({columns}) VALUES ({placeholders}) "
                    f"ON CONFLICT (user_id, idempotency_key) DO NOTHING",
                    list(row.values()),
                )
                if cursor.rowcount == 1:
                    return notification, True
            existing = conn.execute(
                "SELECT * FROM notifications WHERE user_id = ? AND idempotency_key = ?",
                (notification.user_id, notification.idempotency_key),
            ).fetchone()
        if existing is None:
            # dispatched earlier, row since removed by retention
            return notification, False
        return notification_from_row(dict(existing)), False

    def delete_notifications_older_than(self, cutoff: datetime) -> int:
        with self._connect("delete_notifications_older_than") as conn:
            cursor = conn.execute(
                "DELETE FROM notifications WHERE created_at < ?",
                (format_timestamp(cutoff),),
            )
            return cursor.rowcount

    # =========================================================================
    # IMAGES
    # =========================================================================

    def find_orphaned_images(self, cutoff: datetime) -> List[Image]:
        with self._connect("find_orphaned_images") as conn:
            rows = conn.execute(
                """
                SELECT * FROM images
                WHERE (task_id IS NULL AND pet_id IS NULL AND created_at < ?)
                   OR reconcile_state = ?
                """,
                (format_timestamp(cutoff), ImageReconcileState.STORAGE_DELETED.value),
            ).fetchall()
        return [image_from_row(dict(r)) for r in rows]

    def delete_image_row(self, image_id: str) -> bool:
        with self._connect("delete_image_row") as conn:
            cursor = conn.execute("DELETE FROM images WHERE id = ?", (image_id,))
            return cursor.rowcount > 0

    def flag_image_inconsistent(self, image_id: str) -> None:
        with self._connect("flag_image_inconsistent") as conn:
            conn.execute(
                "UPDATE images SET reconcile_state = ? WHERE id = ?",
                (ImageReconcileState.STORAGE_DELETED.value, image_id),
            )

    # =========================================================================
    # JOB LEASES
    # =========================================================================

    def acquire_job_lock(self, job_name: str, owner: str, now: datetime, ttl: timedelta) -> bool:
        with self._connect("acquire_job_lock") as conn:
            conn.execute(
                """
                INSERT INTO job_locks (job_name, owner, expires_at) VALUES (?, ?, ?)
                ON CONFLICT (job_name) DO UPDATE
                    SET owner = excluded.owner, expires_at = excluded.expires_at
                    WHERE job_locks.expires_at <= ?
                """,
                (job_name, owner, format_timestamp(now + ttl), format_timestamp(now)),
            )
            row = conn.execute(
                "SELECT owner FROM job_locks WHERE job_name = ?", (job_name,)
            ).fetchone()
        return row is not None and row["owner"] == owner

    def release_job_lock(self, job_name: str, owner: str) -> None:
        with self._connect("release_job_lock") as conn:
            conn.execute(
                "DELETE FROM job_locks WHERE job_name = ? AND owner = ?",
                (job_name, owner),
            )
