# src/sittr/auth.py
"""Shared-secret authentication for cron triggers."""

import logging
import secrets
from typing import Optional

from fastapi import Header

from .core.container import container
from .core.errors import AuthorizationError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def check_cron_secret(authorization: Optional[str], secret: str):
    """
    Accept only `Authorization: Bearer <secret>`.

    An unset secret rejects every caller. The comparison is constant time.

    Raises:
        AuthorizationError: header missing, malformed or wrong
    """
    if not secret:
        logger.warning("Cron trigger rejected: CRON_SECRET is not configured")
        raise AuthorizationError("Cron secret is not configured")
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthorizationError()
    presented = authorization[len(BEARER_PREFIX):].strip()
    if not secrets.compare_digest(presented.encode(), secret.encode()):
        logger.warning("Cron trigger rejected: wrong secret")
        raise AuthorizationError()


def verify_cron_secret(authorization: Optional[str] = Header(None)):
    """FastAPI dependency guarding the /api/cron routes."""
    check_cron_secret(authorization, container.config().cron_secret)
