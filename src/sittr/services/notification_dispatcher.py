"""
Notification Dispatcher

The single sink every notification producer goes through. Each dispatch is
keyed by (recipient, idempotency key); the store's uniqueness constraint makes
the insert atomic, so concurrent job runs can never create the same
notification twice.

Delivery channels (push, email, ...) are callables run after a row is newly
created. They never run for an existing row, and a failing channel does not
undo the row.

Usage:
    dispatcher = NotificationDispatcher(store, clock)
    result = dispatcher.dispatch(
        "user-1",
        NotificationPayload(NotificationType.OVERDUE_TASK, 'Task "Walk Rex" is overdue!', task_id="t-1"),
        overdue_key("t-1"),
    )
    if result.created:
        ...
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from ..core.clock import Clock
from ..core.models import Notification, NotificationPayload
from ..core.ports.database import EntityStorePort

logger = logging.getLogger(__name__)

DeliveryChannel = Callable[[Notification], None]


# =============================================================================
# IDEMPOTENCY KEYS
# =============================================================================

def overdue_key(task_id: str) -> str:
    return f"task:{task_id}:overdue"


def due_soon_key(task_id: str) -> str:
    return f"task:{task_id}:due-soon"


def birthday_key(pet_id: str, day: date) -> str:
    return f"pet:{pet_id}:birthday:{day.isoformat()}"


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a dispatch: the stored row and whether this call created it."""
    notification: Notification
    created: bool

    @property
    def already_exists(self) -> bool:
        return not self.created


class NotificationDispatcher:
    """Insert-if-absent notification sink with delivery fan-out."""

    def __init__(
        self,
        store: EntityStorePort,
        clock: Clock,
        channels: Optional[List[DeliveryChannel]] = None,
    ):
        self._store = store
        self._clock = clock
        self._channels: List[DeliveryChannel] = list(channels or [])

    def add_channel(self, channel: DeliveryChannel):
        self._channels.append(channel)

    def dispatch(
        self,
        recipient_id: str,
        payload: NotificationPayload,
        idempotency_key: str,
    ) -> DispatchResult:
        """
        Create the notification unless one with this key already exists for
        the recipient.

        Raises:
            StoreError: the insert itself failed
        """
        candidate = Notification.from_payload(
            recipient_id, payload, idempotency_key, created_at=self._clock.now()
        )
        row, created = self._store.insert_notification_if_absent(candidate)

        if not created:
            logger.debug(f"Notification {idempotency_key} for {recipient_id} already exists")
            return DispatchResult(row, False)

        logger.info(f"Created {payload.notification_type.value} notification for {recipient_id}")
        self._deliver(row)
        return DispatchResult(row, True)

    def _deliver(self, notification: Notification):
        for channel in self._channels:
            try:
                channel(notification)
            except Exception:
                # the row stands regardless of delivery
                logger.exception(
                    f"Delivery channel {getattr(channel, '__name__', channel)!r} failed "
                    f"for notification {notification.id}"
                )
