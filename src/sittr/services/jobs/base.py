# src/sittr/services/jobs/base.py
"""
Background Jobs Base Module

Job configuration registry, the per-candidate worker pool, the job lease and
the runner used by the HTTP routes, the scheduler and the CLI.
"""

import logging
import os
import socket
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from ...core.container import container
from ...core.errors import SittrError, UnknownJobError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class JobConfig:
    """Configuration for a background job."""
    name: str
    description: str
    schedule: str  # cron expression
    slug: str  # path segment under /api/cron
    count_key: str  # key of the headline count in the result body
    enabled: bool = True


# Job configuration registry
JOB_CONFIGS: Dict[str, JobConfig] = {
    "expire_invite_codes": JobConfig(
        name="Expire Invite Codes",
        description="Delete group invite codes past their TTL or out of uses",
        schedule="0 * * * *",  # Hourly
        slug="delete-expired-invites",
        count_key="deletedInviteCount",
    ),
    "notify_overdue_tasks": JobConfig(
        name="Overdue Task Notifications",
        description="Notify owners, claimers and verifiers of overdue tasks",
        schedule="*/15 * * * *",  # Every 15 minutes
        slug="notify-overdue-tasks",
        count_key="overdueTasks",
    ),
    "notify_upcoming_tasks": JobConfig(
        name="Upcoming Unclaimed Task Notifications",
        description="Tell group members about unclaimed tasks that start soon",
        schedule="30 * * * *",  # Hourly at :30
        slug="notify-upcoming-tasks",
        count_key="upcomingTasks",
    ),
    "notify_of_pet_birthdays": JobConfig(
        name="Pet Birthday Notifications",
        description="Wish pets a happy birthday, once per viewer per day",
        schedule="0 8 * * *",  # Daily at 8 AM
        slug="send-birthday-notifications",
        count_key="birthdayNotifications",
    ),
    "delete_old_notifications": JobConfig(
        name="Notification Retention Sweep",
        description="Delete notifications past the retention horizon, read or not",
        schedule="0 3 * * *",  # Daily at 3 AM
        slug="delete-old-notifications",
        count_key="deletedNotificationCount",
    ),
    "delete_old_unlinked_images": JobConfig(
        name="Orphaned Image Reclaimer",
        description="Delete unlinked images older than the upload grace period",
        schedule="15 * * * *",  # Hourly at :15
        slug="delete-unlinked-images",
        count_key="deletedImageCount",
    ),
}


def resolve_job_name(name: str) -> str:
    """Accept either a registry key or a route slug."""
    if name in JOB_CONFIGS:
        return name
    for key, config in JOB_CONFIGS.items():
        if config.slug == name:
            return key
    raise UnknownJobError(name, list(JOB_CONFIGS.keys()))


# =============================================================================
# PER-CANDIDATE WORKER POOL
# =============================================================================

@dataclass
class CandidateOutcome:
    """Tagged result of processing one candidate."""
    key: str
    ok: bool
    created: int = 0
    error: Optional[BaseException] = None


@dataclass
class JobSummary:
    """Fold of candidate outcomes."""
    job: str
    candidates: int = 0
    triggered: int = 0  # successful candidates that created something
    created: int = 0
    failures: List[CandidateOutcome] = field(default_factory=list)

    def record(self, outcome: CandidateOutcome):
        self.candidates += 1
        if not outcome.ok:
            self.failures.append(outcome)
            return
        if outcome.created:
            self.triggered += 1
            self.created += outcome.created

    @property
    def failed(self) -> int:
        return len(self.failures)

    def failures_of(self, error_type: type) -> List[CandidateOutcome]:
        return [f for f in self.failures if isinstance(f.error, error_type)]


def _evaluate(job: str, key: str, work: Callable[[T], int], candidate: T) -> CandidateOutcome:
    try:
        return CandidateOutcome(key=key, ok=True, created=int(work(candidate) or 0))
    except Exception as e:
        logger.exception(f"[{job}] candidate {key} failed: {e}")
        return CandidateOutcome(key=key, ok=False, error=e)


def run_candidates(
    job: str,
    candidates: Iterable[T],
    key: Callable[[T], str],
    work: Callable[[T], int],
    workers: int,
) -> JobSummary:
    """
    Process candidates on a bounded thread pool.

    `work` returns how many things it created (notifications, deletions).
    An exception from one candidate is logged and recorded; it never stops
    the others.
    """
    summary = JobSummary(job=job)
    candidates = list(candidates)
    if not candidates:
        return summary

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=job) as pool:
        futures = [
            pool.submit(_evaluate, job, key(candidate), work, candidate)
            for candidate in candidates
        ]
        for future in as_completed(futures):
            summary.record(future.result())
    return summary


# =============================================================================
# JOB LEASE
# =============================================================================

def _lease_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


@contextmanager
def job_lease(store, clock, job_name: str, ttl):
    """
    Hold the per-job lease for the duration of the block.

    Yields True if this run holds the lease, False if another live run does.
    """
    owner = _lease_owner()
    acquired = store.acquire_job_lock(job_name, owner, clock.now(), ttl)
    try:
        yield acquired
    finally:
        if acquired:
            try:
                store.release_job_lock(job_name, owner)
            except SittrError as e:
                # the lease expires on its own after the TTL
                logger.error(f"Could not release lease for {job_name}: {e}")


# =============================================================================
# JOB BASE CLASS
# =============================================================================

class MaintenanceJob:
    """
    Base class for the maintenance jobs.

    Subclasses set `key` and implement execute(), which returns a dict holding
    at least the job's count key. run() adds the lease, logging and the
    success envelope.
    """

    key: str = ""

    def __init__(
        self,
        store=None,
        clock=None,
        config=None,
        dispatcher=None,
        storage=None,
    ):
        self._wired = store is None and clock is None
        self.store = store or container.store()
        self.clock = clock or container.clock()
        self.config = config or container.config()
        self._dispatcher = dispatcher
        self._storage = storage

    @property
    def job_config(self) -> JobConfig:
        return JOB_CONFIGS[self.key]

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            if self._wired:
                self._dispatcher = container.dispatcher()
            else:
                from ..notification_dispatcher import NotificationDispatcher
                self._dispatcher = NotificationDispatcher(self.store, self.clock)
        return self._dispatcher

    @property
    def storage(self):
        if self._storage is None:
            self._storage = container.storage()
        return self._storage

    def execute(self) -> Dict[str, Any]:
        raise NotImplementedError

    def run(self) -> Dict[str, Any]:
        """Run the job once under its lease and return the result body."""
        logger.info(f"Running {self.__class__.__name__}")
        with job_lease(self.store, self.clock, self.key, self.config.job_lock_ttl) as acquired:
            if not acquired:
                logger.info(f"{self.key} is already running elsewhere - skipping")
                return {"success": True, "skipped": "already_running"}
            result = self.execute()
        logger.info(f"{self.__class__.__name__} finished: {result}")
        return {"success": True, **result}


# =============================================================================
# JOB RUNNER FUNCTIONS
# =============================================================================

def get_job_classes() -> Dict[str, type]:
    # Import here to avoid circular imports
    from .invite_codes import ExpireInviteCodesJob
    from .notification_retention import NotificationRetentionJob
    from .orphaned_images import OrphanedImageJob
    from .overdue_tasks import OverdueTaskJob
    from .pet_birthdays import PetBirthdayJob
    from .upcoming_tasks import UpcomingTaskJob

    return {
        cls.key: cls
        for cls in (
            ExpireInviteCodesJob,
            OverdueTaskJob,
            UpcomingTaskJob,
            PetBirthdayJob,
            NotificationRetentionJob,
            OrphanedImageJob,
        )
    }


def run_job(job_name: str) -> Dict[str, Any]:
    """
    Run a specific background job by name.

    Args:
        job_name: A JOB_CONFIGS key or its route slug

    Returns:
        Job result dict

    Raises:
        UnknownJobError: no such job
        StoreError: a batch job's store call failed
        ReconciliationError: images need manual reconciliation
    """
    key = resolve_job_name(job_name)
    if not JOB_CONFIGS[key].enabled:
        logger.info(f"{key} is disabled - skipping")
        return {"success": True, "skipped": "disabled"}
    job = get_job_classes()[key]()
    return job.run()


def run_all_jobs() -> List[Dict[str, Any]]:
    """
    Run every enabled job once, in registry order.

    A failing job is logged and reported in its entry; the remaining jobs
    still run.
    """
    results = []
    for key in JOB_CONFIGS:
        try:
            results.append({"job": key, "result": run_job(key)})
        except Exception as e:
            logger.exception(f"Job {key} failed: {e}")
            results.append({"job": key, "result": {"success": False, "error": str(e)}})
    return results


__all__ = [
    "JobConfig",
    "JOB_CONFIGS",
    "CandidateOutcome",
    "JobSummary",
    "MaintenanceJob",
    "job_lease",
    "resolve_job_name",
    "run_candidates",
    "run_job",
    "run_all_jobs",
]
