# src/sittr/core/container.py
"""
Dependency Injection Container

Central wiring for the maintenance jobs. Picks the entity store and object
storage adapters from config (SQLite <-> Supabase, local <-> Supabase) so
job code never names a backend.

Usage:
    from src.sittr.core.container import container

    store = container.store()
    clock = container.clock()

Tests swap in their own instances:
    container.configure(store=sqlite_store, clock=FixedClock(...))
"""

import logging
import threading
from typing import Optional

from .clock import Clock, SystemClock
from .ports.database import EntityStorePort
from .ports.storage import StoragePort

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    Provides cached factory methods for the clock, config, store, storage and
    notification dispatcher.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._config = None
        self._clock: Optional[Clock] = None
        self._store: Optional[EntityStorePort] = None
        self._storage: Optional[StoragePort] = None
        self._dispatcher = None

    # =========================================================================
    # CONFIG / CLOCK
    # =========================================================================

    def config(self):
        if self._config is None:
            from ..config import get_config
            self._config = get_config()
        return self._config

    def clock(self) -> Clock:
        if self._clock is None:
            self._clock = SystemClock()
        return self._clock

    # =========================================================================
    # ENTITY STORE
    # =========================================================================

    def store(self) -> EntityStorePort:
        """
        Get the entity store instance.

        Returns SQLiteEntityStore or SupabaseEntityStore based on config.
        """
        with self._lock:
            if self._store is None:
                database_type = self.config().database_type
                if database_type == "supabase":
                    from ..adapters.database.supabase import SupabaseEntityStore
                    self._store = SupabaseEntityStore()
                elif database_type == "sqlite":
                    from ..adapters.database.sqlite import SQLiteEntityStore
                    self._store = SQLiteEntityStore(self.config().database_path)
                else:
                    raise ValueError(f"Unknown database type: {database_type}")
            return self._store

    # =========================================================================
    # STORAGE
    # =========================================================================

    def storage(self) -> StoragePort:
        """
        Get the object storage adapter.

        Returns SupabaseStorageAdapter or LocalStorageAdapter based on config.
        """
        with self._lock:
            if self._storage is None:
                storage_type = self.config().storage_type
                if storage_type == "supabase":
                    from ..adapters.storage.supabase import SupabaseStorageAdapter
                    self._storage = SupabaseStorageAdapter()
                elif storage_type == "local":
                    from ..adapters.storage.local import LocalStorageAdapter
                    self._storage = LocalStorageAdapter(self.config().local_storage_path)
                else:
                    raise ValueError(f"Unknown storage type: {storage_type}")
            return self._storage

    # =========================================================================
    # NOTIFICATION DISPATCHER
    # =========================================================================

    def dispatcher(self):
        with self._lock:
            if self._dispatcher is None:
                from ..services.notification_dispatcher import NotificationDispatcher
                self._dispatcher = NotificationDispatcher(self.store(), self.clock())
            return self._dispatcher

    # =========================================================================
    # UTILITY
    # =========================================================================

    def reset(self):
        """Reset all cached instances (useful for testing)."""
        with self._lock:
            self._config = None
            self._clock = None
            self._store = None
            self._storage = None
            self._dispatcher = None
        logger.info("Container reset")

    def configure(
        self,
        config=None,
        clock: Optional[Clock] = None,
        store: Optional[EntityStorePort] = None,
        storage: Optional[StoragePort] = None,
        dispatcher=None,
    ):
        """
        Replace wired instances at runtime.

        Any dependant that was built from a replaced instance (the dispatcher
        from the store and clock) is rebuilt on next access.
        """
        with self._lock:
            if config is not None:
                self._config = config
            if clock is not None:
                self._clock = clock
                self._dispatcher = None
            if store is not None:
                self._store = store
                self._dispatcher = None
            if storage is not None:
                self._storage = storage
            if dispatcher is not None:
                self._dispatcher = dispatcher
        logger.info("Container reconfigured")


# Global container instance
container = Container()

