# src/sittr/api/cron.py
"""
Cron Trigger API Routes

Each maintenance job is exposed as GET and POST /api/cron/<slug> behind the
shared-secret check. The body is the job's result:
    {"success": true, "overdueTasks": 3, ...}
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..auth import verify_cron_secret
from ..services.jobs.base import JOB_CONFIGS, resolve_job_name, run_job
from ..services.scheduler import describe_jobs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", dependencies=[Depends(verify_cron_secret)])


@router.get("")
def list_cron_jobs():
    """List all registered jobs and their schedules."""
    return JSONResponse({"success": True, "jobs": describe_jobs()})


@router.api_route("/{job_slug}", methods=["GET", "POST"])
def trigger_cron_job(job_slug: str):
    """
    Run one job to completion and return its summary.

    Errors (unknown job, store failure, reconciliation) propagate to the
    app's exception handlers, which render the standard error envelope.
    """
    key = resolve_job_name(job_slug)
    logger.info(f"Cron trigger for {key} ({JOB_CONFIGS[key].slug})")
    return JSONResponse(run_job(key))
