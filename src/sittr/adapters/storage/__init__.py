# src/sittr/adapters/storage/__init__.py
"""
Storage adapters package.

Contains concrete implementations of StoragePort for different providers:
- Supabase: image buckets in Supabase Storage
- Local: filesystem directories for local development
"""

from .local import LocalStorageAdapter
from .supabase import SupabaseStorageAdapter

__all__ = [
    "LocalStorageAdapter",
    "SupabaseStorageAdapter",
]
