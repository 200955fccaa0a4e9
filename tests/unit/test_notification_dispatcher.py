# tests/unit/test_notification_dispatcher.py
"""
Unit tests for the notification dispatcher.
"""

import logging
from unittest.mock import MagicMock

import pytest

from src.sittr.core.errors import StoreError
from src.sittr.core.models import NotificationPayload, NotificationType
from src.sittr.services.notification_dispatcher import NotificationDispatcher, overdue_key


@pytest.fixture
def payload():
    return NotificationPayload(
        NotificationType.OVERDUE_TASK, 'Task "Walk Rex" is overdue!', task_id="t1", group_id="g1"
    )


class TestDispatch:

    def test_first_dispatch_creates(self, dispatcher, store, clock, payload):
        result = dispatcher.dispatch("u1", payload, overdue_key("t1"))

        assert result.created is True
        assert result.already_exists is False
        assert result.notification.created_at == clock.now()
        assert result.notification.associated_task_id == "t1"

        [stored] = store.list_notifications("u1")
        assert stored.id == result.notification.id
        assert stored.idempotency_key == "task:t1:overdue"

    def test_repeat_dispatch_returns_existing(self, dispatcher, store, clock, payload):
        first = dispatcher.dispatch("u1", payload, overdue_key("t1"))
        clock.advance(hours=1)
        second = dispatcher.dispatch("u1", payload, overdue_key("t1"))

        assert second.created is False
        assert second.notification.id == first.notification.id
        assert len(store.list_notifications("u1")) == 1

    def test_existing_row_survives_being_read(self, dispatcher, store, payload):
        dispatcher.dispatch("u1", payload, overdue_key("t1"))
        # a user "reading" the notification does not reset idempotency
        with store._connect("mark read") as conn:
            conn.execute("UPDATE notifications SET read = 1")

        assert dispatcher.dispatch("u1", payload, overdue_key("t1")).created is False

    def test_store_failure_propagates(self, clock, payload):
        store = MagicMock()
        store.insert_notification_if_absent.side_effect = StoreError("insert_notification_if_absent")

        with pytest.raises(StoreError):
            NotificationDispatcher(store, clock).dispatch("u1", payload, overdue_key("t1"))


class TestDeliveryChannels:

    def test_channel_runs_only_on_create(self, dispatcher, payload):
        channel = MagicMock()
        dispatcher.add_channel(channel)

        dispatcher.dispatch("u1", payload, overdue_key("t1"))
        dispatcher.dispatch("u1", payload, overdue_key("t1"))

        channel.assert_called_once()
        assert channel.call_args[0][0].user_id == "u1"

    def test_failing_channel_keeps_row(self, store, clock, payload, caplog):
        def broken(notification):
            raise ConnectionError("push service down")

        after = MagicMock()
        dispatcher = NotificationDispatcher(store, clock, channels=[broken, after])

        with caplog.at_level(logging.ERROR):
            result = dispatcher.dispatch("u1", payload, overdue_key("t1"))

        assert result.created is True
        assert len(store.list_notifications("u1")) == 1
        after.assert_called_once()
        assert "broken" in caplog.text

    def test_clock_drives_created_at(self, dispatcher, clock, payload):
        later = clock.advance(days=2)
        result = dispatcher.dispatch("u2", payload, overdue_key("t1"))
        assert result.notification.created_at == later
