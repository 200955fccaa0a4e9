# src/sittr/core/ports/storage.py
"""
Storage Port Interface

Abstract interface for the object storage that holds uploaded pet and task
images. Implementations:
- SupabaseStorageAdapter (production)
- LocalStorageAdapter (local development)
"""

from abc import ABC, abstractmethod


class StoragePort(ABC):
    """
    Abstract port interface for image object storage.

    The reclaimer removes objects and checks whether they are still there;
    upload_file is how objects get there in the first place.
    """

    @abstractmethod
    def upload_file(self, file_content: bytes, path: str, bucket: str) -> str:
        """
        Write an object to storage, replacing any object at the same key.

        Returns:
            The object key
        """
        pass

    @abstractmethod
    def delete_file(self, path: str, bucket: str) -> bool:
        """
        Delete an object from storage.

        Deleting an object that does not exist counts as success.

        Args:
            path: Object key within the bucket
            bucket: Storage bucket name

        Returns:
            True if the object is gone afterwards, False if the delete failed
        """
        pass

    @abstractmethod
    def file_exists(self, path: str, bucket: str) -> bool:
        """
        Check if an object exists in storage.

        Args:
            path: Object key within the bucket
            bucket: Storage bucket name

        Returns:
            True if the object exists
        """
        pass
