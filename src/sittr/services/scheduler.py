"""
In-process Job Scheduler

Uses APScheduler to fire the maintenance jobs on their cron expressions from
inside the API process. The external cron trigger hitting /api/cron/* stays
the primary trigger; this is for deployments without one.

Only runs when the environment is production and scheduler_enabled is set,
so development servers and test runs never fire jobs on their own.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..core.errors import ReconciliationError
from .jobs.base import JOB_CONFIGS, run_job

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


def _job_runner(job_key: str) -> Callable[[], None]:
    """Wrap a job so a failure is logged instead of killing the scheduler thread."""

    def run():
        try:
            result = run_job(job_key)
            logger.info(f"{job_key} completed: {result}")
        except ReconciliationError as e:
            logger.error(f"{job_key} needs reconciliation: {e}")
        except Exception:
            logger.exception(f"{job_key} failed")

    run.__name__ = f"run_{job_key}"
    return run


def init_scheduler(config) -> Optional[BackgroundScheduler]:
    """
    Initialize the APScheduler with all enabled jobs.

    Returns:
        The started scheduler, or None when disabled for this environment
    """
    global _scheduler

    if config.environment != "production" or not config.scheduler_enabled:
        logger.info(f"Scheduler disabled in {config.environment} environment")
        return None
    if _scheduler is not None:
        return _scheduler

    _scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={
            'coalesce': True,  # Combine missed executions
            'max_instances': 1,  # One instance at a time
            'misfire_grace_time': 60 * 30,  # 30 min grace period
        },
    )

    for key, job_config in JOB_CONFIGS.items():
        if not job_config.enabled:
            continue
        _scheduler.add_job(
            _job_runner(key),
            CronTrigger.from_crontab(job_config.schedule, timezone="UTC"),
            id=key,
            name=job_config.name,
            replace_existing=True,
        )

    _scheduler.start()
    logger.info("✅ Background job scheduler started")

    for job in _scheduler.get_jobs():
        logger.info(f"  📅 {job.name}: next run at {job.next_run_time}")

    return _scheduler


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown complete")
        _scheduler = None


def get_next_job_runs() -> Dict[str, Optional[str]]:
    """Next scheduled run time per job key (empty when the scheduler is off)."""
    if not _scheduler:
        return {}
    return {
        job.id: job.next_run_time.isoformat() if job.next_run_time else None
        for job in _scheduler.get_jobs()
    }


def describe_jobs() -> List[Dict[str, Any]]:
    """Registered jobs with their schedules, for the cron index route."""
    next_runs = get_next_job_runs()
    return [
        {
            "job": key,
            "name": job_config.name,
            "description": job_config.description,
            "path": f"/api/cron/{job_config.slug}",
            "schedule": job_config.schedule,
            "enabled": job_config.enabled,
            "countKey": job_config.count_key,
            "nextRun": next_runs.get(key),
        }
        for key, job_config in JOB_CONFIGS.items()
    ]
