# tests/unit/test_domain_models.py
"""
Unit tests for domain models, the clock and task classification.

No store involved; everything here is pure.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from src.sittr.core.clock import FixedClock, SystemClock, ensure_utc
from src.sittr.core.models import (
    DateRange,
    GroupInviteCode,
    Notification,
    NotificationPayload,
    NotificationType,
    Task,
    TaskDueState,
)
from src.sittr.services.jobs.overdue_tasks import classify_task
from src.sittr.services.jobs.pet_birthdays import birthday_dates, local_today
from src.sittr.services.notification_dispatcher import (
    birthday_key,
    due_soon_key,
    overdue_key,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
WINDOW = timedelta(hours=6)


# =============================================================================
# CLOCK
# =============================================================================

class TestClock:
    """Tests for the injectable clock."""

    def test_fixed_clock_advances(self):
        clock = FixedClock(NOW)
        assert clock.now() == NOW

        later = clock.advance(days=1, hours=2)

        assert later == NOW + timedelta(days=1, hours=2)
        assert clock.now() == later

    def test_fixed_clock_treats_naive_as_utc(self):
        clock = FixedClock(datetime(2026, 3, 10, 12, 0))
        assert clock.now() == NOW
        assert clock.now().tzinfo is not None

    def test_ensure_utc_converts_offsets(self):
        plus_two = timezone(timedelta(hours=2))
        assert ensure_utc(datetime(2026, 3, 10, 14, 0, tzinfo=plus_two)) == NOW

    def test_system_clock_is_aware(self):
        assert SystemClock().now().tzinfo is not None


# =============================================================================
# TASK CLASSIFICATION
# =============================================================================

class TestClassifyTask:
    """A task is overdue iff not done and its deadline is strictly before now."""

    def test_due_date_in_past_is_overdue(self):
        task = Task(id="t1", owner_id="u1", due_date=NOW - timedelta(days=1))
        assert classify_task(task, NOW) is TaskDueState.OVERDUE

    def test_due_date_equal_to_now_is_not_overdue(self):
        task = Task(id="t1", owner_id="u1", due_date=NOW)
        assert classify_task(task, NOW) is not TaskDueState.OVERDUE
        assert not task.is_overdue(NOW)

    def test_one_microsecond_past_is_overdue(self):
        task = Task(id="t1", owner_id="u1", due_date=NOW - timedelta(microseconds=1))
        assert classify_task(task, NOW) is TaskDueState.OVERDUE

    def test_done_task_is_never_overdue(self):
        task = Task(id="t1", owner_id="u1", due_date=NOW - timedelta(days=3), marked_as_done=True)
        assert classify_task(task, NOW) is TaskDueState.DONE

    def test_range_task_uses_range_end(self):
        started = Task(
            id="t1", owner_id="u1", due_mode=False,
            date_range=DateRange(NOW - timedelta(days=2), NOW + timedelta(hours=1)),
        )
        ended = Task(
            id="t2", owner_id="u1", due_mode=False,
            date_range=DateRange(NOW - timedelta(days=2), NOW - timedelta(hours=1)),
        )
        assert classify_task(started, NOW) is TaskDueState.ON_TIME
        assert classify_task(ended, NOW) is TaskDueState.OVERDUE

    def test_range_task_ignores_stray_due_date(self):
        task = Task(
            id="t1", owner_id="u1", due_mode=False,
            due_date=NOW - timedelta(days=5),
            date_range=DateRange(NOW, NOW + timedelta(days=1)),
        )
        assert classify_task(task, NOW) is not TaskDueState.OVERDUE

    def test_due_soon_window(self):
        soon = Task(id="t1", owner_id="u1", due_date=NOW + timedelta(hours=5))
        later = Task(id="t2", owner_id="u1", due_date=NOW + timedelta(hours=7))
        edge = Task(id="t3", owner_id="u1", due_date=NOW + WINDOW)

        assert classify_task(soon, NOW, WINDOW) is TaskDueState.DUE_SOON
        assert classify_task(later, NOW, WINDOW) is TaskDueState.ON_TIME
        assert classify_task(edge, NOW, WINDOW) is TaskDueState.ON_TIME

    def test_due_soon_uses_range_start(self):
        task = Task(
            id="t1", owner_id="u1", due_mode=False,
            date_range=DateRange(NOW + timedelta(hours=2), NOW + timedelta(days=2)),
        )
        assert classify_task(task, NOW, WINDOW) is TaskDueState.DUE_SOON

    def test_without_window_nothing_is_due_soon(self):
        task = Task(id="t1", owner_id="u1", due_date=NOW + timedelta(hours=1))
        assert classify_task(task, NOW) is TaskDueState.ON_TIME

    def test_task_without_dates_is_on_time(self):
        assert classify_task(Task(id="t1", owner_id="u1"), NOW) is TaskDueState.ON_TIME


# =============================================================================
# INVITE CODES
# =============================================================================

class TestGroupInviteCode:

    def test_expires_at_is_created_plus_ttl(self):
        code = GroupInviteCode(
            id="c1", group_id="g1", code="abc",
            created_at=NOW - timedelta(days=30), ttl=timedelta(days=30),
        )
        assert code.expires_at == NOW
        assert code.is_expired(NOW)
        assert not code.is_expired(NOW - timedelta(seconds=1))

    @pytest.mark.parametrize("uses,max_uses,exhausted", [
        (0, None, False),
        (100, None, False),
        (2, 3, False),
        (3, 3, True),
        (4, 3, True),
    ])
    def test_exhausted(self, uses, max_uses, exhausted):
        code = GroupInviteCode(
            id="c1", group_id="g1", code="abc", created_at=NOW,
            ttl=timedelta(days=1), uses=uses, max_uses=max_uses,
        )
        assert code.is_exhausted is exhausted


# =============================================================================
# BIRTHDAYS / IDEMPOTENCY KEYS
# =============================================================================

class TestBirthdayDates:

    def test_ordinary_day(self):
        assert birthday_dates(date(2026, 3, 10)) == [(3, 10)]

    def test_feb_28_in_non_leap_year_includes_leap_day(self):
        assert birthday_dates(date(2027, 2, 28)) == [(2, 28), (2, 29)]

    def test_feb_28_in_leap_year_does_not(self):
        assert birthday_dates(date(2028, 2, 28)) == [(2, 28)]

    def test_local_today_respects_timezone(self):
        late_utc = datetime(2026, 3, 10, 23, 30, tzinfo=timezone.utc)
        assert local_today(late_utc, "UTC") == date(2026, 3, 10)
        assert local_today(late_utc, "Pacific/Auckland") == date(2026, 3, 11)
        assert local_today(late_utc, "America/Los_Angeles") == date(2026, 3, 10)


class TestNotificationModel:

    def test_idempotency_keys(self):
        assert overdue_key("t1") == "task:t1:overdue"
        assert due_soon_key("t1") == "task:t1:due-soon"
        assert birthday_key("p1", date(2026, 3, 10)) == "pet:p1:birthday:2026-03-10"

    def test_from_payload_and_to_dict(self):
        payload = NotificationPayload(
            NotificationType.OVERDUE_TASK, 'Task "Walk" is overdue!', task_id="t1", group_id="g1"
        )
        notification = Notification.from_payload("u1", payload, "task:t1:overdue", NOW)

        d = notification.to_dict()
        assert d["user_id"] == "u1"
        assert d["notification_type"] == "Overdue Task"
        assert d["associated_task_id"] == "t1"
        assert d["associated_group_id"] == "g1"
        assert d["read"] is False
        assert d["created_at"] == NOW.isoformat()
