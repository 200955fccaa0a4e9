# src/sittr/core/ports/__init__.py
"""
Port interfaces for dependency inversion.

Adapters under src.sittr.adapters implement these.
"""

from .database import EntityStorePort
from .storage import StoragePort

__all__ = [
    "EntityStorePort",
    "StoragePort",
]
