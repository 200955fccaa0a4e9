# src/sittr/adapters/storage/local.py
"""
Local File Storage Adapter

Implements StoragePort interface using the local filesystem: one directory
per bucket under a base path.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from ...core.ports.storage import StoragePort

logger = logging.getLogger(__name__)


class LocalStorageAdapter(StoragePort):
    """
    Local filesystem implementation of StoragePort.
    """

    def __init__(self, base_path: Optional[str] = None):
        """
        Initialize local storage adapter.

        Args:
            base_path: Base directory for file storage (defaults to ./uploads)
        """
        self._base_path = Path(base_path or os.getenv("LOCAL_STORAGE_PATH", "./uploads"))
        self._base_path.mkdir(parents=True, exist_ok=True)

    def _get_file_path(self, bucket: str, path: str) -> Path:
        """Get the full path for an object, refusing keys that escape the bucket."""
        bucket_path = (self._base_path / bucket).resolve()
        file_path = (bucket_path / path).resolve()
        if bucket_path not in file_path.parents:
            raise ValueError(f"Object key escapes bucket: {path}")
        return file_path

    def upload_file(self, file_content: bytes, path: str, bucket: str) -> str:
        """Write an object; returns its key."""
        file_path = self._get_file_path(bucket, path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "wb") as f:
            f.write(file_content)
        return path

    def delete_file(self, path: str, bucket: str) -> bool:
        """Delete an object from local storage."""
        try:
            self._get_file_path(bucket, path).unlink(missing_ok=True)
            return True
        except (OSError, ValueError) as e:
            logger.error(f"Error deleting file {bucket}/{path}: {e}")
            return False

    def file_exists(self, path: str, bucket: str) -> bool:
        """Check if an object exists in storage."""
        try:
            return self._get_file_path(bucket, path).is_file()
        except ValueError:
            return False
