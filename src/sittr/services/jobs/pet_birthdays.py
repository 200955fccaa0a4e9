# src/sittr/services/jobs/pet_birthdays.py
"""
Pet Birthday Notification Job

"Today" is the calendar date of now in the configured birthday timezone
(UTC unless BIRTHDAY_TIMEZONE says otherwise). Pets whose date of birth has
today's month and day, in any year, get a birthday notification sent to
every viewer: the owner plus Owner/Member users of each group the pet is
shared with.

Pets born on 29 February are celebrated on 28 February in non-leap years.
The idempotency key carries today's date, so a re-run on the same day sends
nothing new and next year's birthday is a fresh notification.

Schedule: Daily at 8 AM
"""

import calendar
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Tuple
from zoneinfo import ZoneInfo

from ...core.models import NotificationPayload, NotificationType, Pet
from ..notification_dispatcher import birthday_key
from .base import MaintenanceJob, run_candidates

logger = logging.getLogger(__name__)


def local_today(now: datetime, tz_name: str) -> date:
    return now.astimezone(ZoneInfo(tz_name)).date()


def birthday_dates(today: date) -> List[Tuple[int, int]]:
    """(month, day) pairs whose pets celebrate on `today`."""
    dates = [(today.month, today.day)]
    if today.month == 2 and today.day == 28 and not calendar.isleap(today.year):
        dates.append((2, 29))
    return dates


class PetBirthdayJob(MaintenanceJob):
    """Send happy-birthday notifications to everyone who can see the pet."""

    key = "notify_of_pet_birthdays"

    def execute(self) -> Dict[str, Any]:
        today = local_today(self.clock.now(), self.config.birthday_timezone)
        pets: Dict[str, Pet] = {}
        for month, day in birthday_dates(today):
            for pet in self.store.find_pets_with_birthday(month, day):
                pets.setdefault(pet.id, pet)
        logger.info(f"{len(pets)} pet(s) have a birthday on {today.isoformat()}")

        summary = run_candidates(
            self.key,
            pets.values(),
            key=lambda pet: pet.id,
            work=lambda pet: self._celebrate(pet, today),
            workers=self.config.job_workers,
        )
        return {
            self.job_config.count_key: summary.created,
            "birthdayPets": summary.triggered,
            "failedPets": summary.failed,
        }

    def _celebrate(self, pet: Pet, today: date) -> int:
        payload = NotificationPayload(
            notification_type=NotificationType.PET_BIRTHDAY,
            message=f"Happy birthday {pet.name}!",
            pet_id=pet.id,
        )
        key = birthday_key(pet.id, today)
        created = 0
        for user_id in self.store.get_pet_viewers(pet):
            if self.dispatcher.dispatch(user_id, payload, key).created:
                created += 1
        return created


def notify_of_pet_birthdays(**deps) -> int:
    """Send today's birthday notifications; returns how many were created."""
    job = PetBirthdayJob(**deps)
    return job.execute()[job.job_config.count_key]
