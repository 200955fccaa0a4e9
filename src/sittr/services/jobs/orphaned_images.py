# src/sittr/services/jobs/orphaned_images.py
"""
Orphaned Image Reclaimer

Deletes images that no task or pet links to once they are older than the
upload grace period (default 2 hours). The grace period applies to every
unlinked image, so an upload that has not been attached yet is never
reclaimed.

Per image:
1. delete the storage object (a missing object counts as deleted)
2. delete the metadata row, retrying a few times

If storage refuses the delete, the row is left alone and the next run tries
again. If the object is gone but the row will not delete, the row is
flagged `storage_deleted`; the next run removes flagged rows without
touching storage. Those images are reported in a ReconciliationError raised
after the whole batch has been processed.

Schedule: Hourly at :15
"""

import logging
from typing import Any, Dict

from ...core.errors import ReconciliationError, StorageDeleteError, StoreError
from ...core.models import Image, ImageReconcileState
from .base import MaintenanceJob, run_candidates

logger = logging.getLogger(__name__)


class _RowDeleteFailed(Exception):
    """Storage object is gone but the metadata row is still there."""

    def __init__(self, image_id: str, cause: BaseException):
        self.image_id = image_id
        self.cause = cause
        super().__init__(f"Image {image_id}: storage object deleted, row delete failed: {cause}")


class OrphanedImageJob(MaintenanceJob):
    """Reclaim unlinked images past the upload grace period."""

    key = "delete_old_unlinked_images"

    def execute(self) -> Dict[str, Any]:
        cutoff = self.clock.now() - self.config.image_grace_period
        images = self.store.find_orphaned_images(cutoff)
        logger.info(f"Found {len(images)} orphaned image(s) uploaded before {cutoff.isoformat()}")

        summary = run_candidates(
            self.key,
            images,
            key=lambda image: image.id,
            work=self._reclaim,
            workers=self.config.job_workers,
        )

        inconsistent = [f.key for f in summary.failures_of(_RowDeleteFailed)]
        result = {
            self.job_config.count_key: summary.created,
            "failedImageCount": summary.failed - len(inconsistent),
            "inconsistentImageCount": len(inconsistent),
        }
        if inconsistent:
            logger.error(f"Images need reconciliation (storage deleted, row kept): {inconsistent}")
            raise ReconciliationError(inconsistent, summary=result)
        return result

    def _reclaim(self, image: Image) -> int:
        if image.reconcile_state is not ImageReconcileState.STORAGE_DELETED:
            if not self.storage.delete_file(image.file_key, self.config.storage_bucket):
                raise StorageDeleteError(image.file_key)
        self._delete_row(image)
        return 1

    def _delete_row(self, image: Image):
        attempts = max(1, self.config.reconcile_retries + 1)
        last_error = None
        for attempt in range(1, attempts + 1):
            try:
                self.store.delete_image_row(image.id)
                return
            except StoreError as e:
                last_error = e
                logger.warning(f"Deleting image row {image.id} failed (attempt {attempt}/{attempts}): {e}")

        try:
            self.store.flag_image_inconsistent(image.id)
        except StoreError as e:
            logger.error(f"Could not flag image {image.id} as storage_deleted: {e}")
        raise _RowDeleteFailed(image.id, last_error)


def delete_old_unlinked_images(**deps) -> int:
    """
    Reclaim orphaned images; returns how many were fully deleted.

    Raises:
        ReconciliationError: some storage objects were deleted but their rows were not
    """
    job = OrphanedImageJob(**deps)
    return job.execute()[job.job_config.count_key]
