"""
inventorylock - optimistic concurrency control for shared product records.

Stores come in two flavours sharing one interface: unversioned stores
overwrite on every save (and so lose concurrent updates), versioned stores
check the version a writer read and reject stale saves with
VersionConflictError.
"""
from inventorylock.errors import (
    InventoryLockError,
    NotFoundError,
    StoreError,
    VersionConflictError,
)
from inventorylock.latch import CountDownLatch
from inventorylock.models import Product
from inventorylock.store import (
    MemoryStore,
    ProductStore,
    SQLiteStore,
    VersionedMemoryStore,
    VersionedProductStore,
    VersionedSQLiteStore,
    get_store,
)
from inventorylock.writer import RaceResult, Writer, WriterOutcome, run_race, update_with_retry

__version__ = "0.1.0"

__all__ = [
    "CountDownLatch",
    "InventoryLockError",
    "MemoryStore",
    "NotFoundError",
    "Product",
    "ProductStore",
    "RaceResult",
    "SQLiteStore",
    "StoreError",
    "VersionConflictError",
    "VersionedMemoryStore",
    "VersionedProductStore",
    "VersionedSQLiteStore",
    "Writer",
    "WriterOutcome",
    "get_store",
    "run_race",
    "update_with_retry",
]
