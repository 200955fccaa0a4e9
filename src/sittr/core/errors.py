# src/sittr/core/errors.py
"""
Error taxonomy for the maintenance jobs.

- AuthorizationError: trigger credential mismatch, raised before any job logic
- StoreError: the entity store failed a read or write
- StorageDeleteError: object storage failed to delete one image
- ReconciliationError: storage and metadata deletion disagree for some images
- UnknownJobError: a trigger named a job that is not registered

An "already exists" outcome from the notification dispatcher is a normal
branch (DispatchResult.created is False), not an error.
"""

from typing import Any, Dict, List, Optional


class SittrError(Exception):
    """Base class for all errors raised by the maintenance service."""


class AuthorizationError(SittrError):
    """The trigger did not present the configured shared secret."""

    def __init__(self, message: str = "Invalid or missing cron credentials"):
        super().__init__(message)


class StoreError(SittrError):
    """The entity store failed a read or a write."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        message = f"Store operation '{operation}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class StorageDeleteError(SittrError):
    """Object storage refused to delete an object; its row is left for the next run."""

    def __init__(self, file_key: str):
        self.file_key = file_key
        super().__init__(f"Storage delete failed for {file_key}")


class ReconciliationError(SittrError):
    """
    Storage objects were deleted but their metadata rows could not be.

    The affected rows are flagged in the store so the next run can finish
    the job; the error is still raised so an operator sees it.
    """

    def __init__(self, image_ids: List[Any], summary: Optional[Dict[str, Any]] = None):
        self.image_ids = list(image_ids)
        self.summary = summary or {}
        super().__init__(
            f"{len(self.image_ids)} image(s) need manual reconciliation: "
            f"{', '.join(str(i) for i in self.image_ids)}"
        )


class UnknownJobError(SittrError):
    """No job is registered under the requested name."""

    def __init__(self, job_name: str, available: List[str]):
        self.job_name = job_name
        self.available = available
        super().__init__(f"Unknown job: {job_name}. Available: {available}")
