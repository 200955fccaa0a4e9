# src/sittr/services/jobs/invite_codes.py
"""
Invite Code Expiry Job

Garbage-collects group invite codes: every code created at least the
configured TTL (INVITE_CODE_TTL_DAYS) ago, every code whose stored expires_at
has passed, and every code that has used up its max_uses. One batch delete;
a store failure aborts the run.

Schedule: Hourly
"""

import logging
from typing import Any, Dict

from .base import MaintenanceJob

logger = logging.getLogger(__name__)


class ExpireInviteCodesJob(MaintenanceJob):
    """Delete expired and exhausted group invite codes."""

    key = "expire_invite_codes"

    def execute(self) -> Dict[str, Any]:
        now = self.clock.now()
        deleted = self.store.delete_expired_invite_codes(now, self.config.invite_code_ttl)
        logger.info(f"Deleted {deleted} expired invite code(s)")
        return {self.job_config.count_key: deleted}


def expire_invite_codes(**deps) -> int:
    """Delete expired invite codes and return how many were removed."""
    job = ExpireInviteCodesJob(**deps)
    return job.execute()[job.job_config.count_key]
