# src/sittr/adapters/database/__init__.py
"""
Entity store adapters.

Contains concrete implementations of EntityStorePort for different backends.
"""

from .sqlite import SQLiteEntityStore
from .supabase import SupabaseEntityStore

__all__ = [
    "SQLiteEntityStore",
    "SupabaseEntityStore",
]
