"""
Product stores and the factory used to pick one.

    get_store(StorageBackend.MEMORY, versioned=True)           -> VersionedMemoryStore
    get_store(StorageBackend.SQLITE, versioned=False, db_path) -> SQLiteStore
"""
from pathlib import Path
from typing import Optional, Union

from inventorylock.config import InventoryLockConfig, StorageBackend
from inventorylock.store.adapter import ProductStore, VersionedProductStore
from inventorylock.store.memory import MemoryStore, VersionedMemoryStore
from inventorylock.store.sqlite import SQLiteStore, VersionedSQLiteStore


def get_store(
    backend: Union[StorageBackend, str] = StorageBackend.MEMORY,
    versioned: bool = True,
    db_path: Optional[Path] = None,
    echo: bool = False,
) -> ProductStore:
    """
    Create a store for the given backend.

    Args:
        backend: Storage backend name
        versioned: Whether saves are version-checked
        db_path: Database file, required by the sqlite backend
        echo: Log SQL statements (sqlite only)
    """
    backend = StorageBackend(backend)
    if backend == StorageBackend.MEMORY:
        return VersionedMemoryStore() if versioned else MemoryStore()

    if db_path is None:
        raise ValueError("The sqlite backend needs a database path")
    store_cls = VersionedSQLiteStore if versioned else SQLiteStore
    return store_cls(db_path, echo=echo)


def store_from_config(config: InventoryLockConfig, versioned: bool = True) -> ProductStore:
    """Create the store described by the application configuration."""
    return get_store(config.backend, versioned=versioned, db_path=config.db_path, echo=config.echo_sql)


__all__ = [
    "MemoryStore",
    "ProductStore",
    "SQLiteStore",
    "VersionedMemoryStore",
    "VersionedProductStore",
    "VersionedSQLiteStore",
    "get_store",
    "store_from_config",
]
