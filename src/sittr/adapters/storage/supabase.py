# src/sittr/adapters/storage/supabase.py
"""
Supabase Storage Adapter

Implements StoragePort interface using Supabase Storage buckets.
"""

import logging
import posixpath

from ...core.ports.storage import StoragePort
from ...infrastructure.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)


class SupabaseStorageAdapter(StoragePort):
    """
    Supabase implementation of StoragePort.

    Storage `remove` is a no-op for keys that are already gone, which gives
    the idempotent delete the reclaimer relies on.
    """

    def __init__(self, client=None):
        """
        Initialize Supabase storage adapter.

        Args:
            client: Supabase client (defaults to the shared singleton)
        """
        self._client = client

    def _get_client(self):
        """Lazy initialization of Supabase client."""
        if self._client is None:
            self._client = get_supabase_client()
            if self._client is None:
                raise RuntimeError("Supabase is not configured (SUPABASE_URL / SUPABASE_KEY)")
        return self._client

    def upload_file(self, file_content: bytes, path: str, bucket: str) -> str:
        """Upload an object to Supabase Storage, overwriting an existing key."""
        self._get_client().storage.from_(bucket).upload(
            path=path,
            file=file_content,
            file_options={"upsert": "true"},
        )
        return path

    def delete_file(self, path: str, bucket: str) -> bool:
        """Delete an object from Supabase Storage."""
        try:
            self._get_client().storage.from_(bucket).remove([path])
            return True
        except Exception as e:
            logger.error(f"Error deleting file {bucket}/{path}: {e}")
            return False

    def file_exists(self, path: str, bucket: str) -> bool:
        """Check if an object exists by listing its parent folder."""
        folder, name = posixpath.split(path)
        try:
            entries = self._get_client().storage.from_(bucket).list(
                folder, {"search": name}
            )
        except Exception as e:
            logger.error(f"Error checking file {bucket}/{path}: {e}")
            return False
        return any(entry.get("name") == name for entry in entries or [])
