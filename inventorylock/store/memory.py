#!/usr/bin/env python3
"""
Thread-safe in-memory stores for inventorylock.

MemoryStore is the unversioned baseline: every save overwrites whatever is
stored, so two writers racing on one product silently lose one update.

VersionedMemoryStore adds optimistic concurrency control. Each product id gets
its own lock from a LockTable; a save holds only that lock while it compares the
expected version and commits, so saves on different ids never contend and
nothing is held across a writer's think time.
"""
import threading
from collections import deque
from datetime import datetime
from typing import Any, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar
from uuid import UUID

from inventorylock.errors import NotFoundError, StoreError, VersionConflictError
from inventorylock.logging import logger
from inventorylock.models.product import Product
from inventorylock.store.adapter import ProductStore, VersionedProductStore


T = TypeVar('T')


class ThreadSafeCollection(Generic[T]):
    """
    Thread-safe collection for storing objects with ID-based access.

    Uses an RLock for thread safety and provides atomic operations.
    """

    def __init__(self) -> None:
        self._items: Dict[UUID, T] = {}
        self._lock = threading.RLock()
        self._changelog = deque(maxlen=1000)  # Limited history for debugging

    def add(self, item_id: UUID, item: T) -> None:
        """
        Add an item to the collection.

        Raises:
            ValueError: If an item with the given ID already exists
        """
        with self._lock:
            if item_id in self._items:
                raise ValueError(f"Item with ID {item_id} already exists")

            self._items[item_id] = item
            self._changelog.append((datetime.now(), "add", item_id))

    def get(self, item_id: UUID) -> T:
        """
        Get an item by ID.

        Raises:
            KeyError: If no item with the given ID exists
        """
        with self._lock:
            if item_id not in self._items:
                raise KeyError(f"No item with ID {item_id}")
            return self._items[item_id]

    def update(self, item_id: UUID, item: T) -> None:
        """
        Replace an existing item.

        Raises:
            KeyError: If no item with the given ID exists
        """
        with self._lock:
            if item_id not in self._items:
                raise KeyError(f"No item with ID {item_id}")

            self._items[item_id] = item
            self._changelog.append((datetime.now(), "update", item_id))

    def list_all(self) -> List[T]:
        with self._lock:
            return list(self._items.values())

    def get_changelog(self) -> List[Tuple[datetime, str, Any]]:
        """
        Get the changelog for debugging purposes.

        Returns:
            List of (timestamp, operation, item_id) tuples
        """
        with self._lock:
            return list(self._changelog)


class LockTable:
    """
    Hands out one lock per key.

    The table's own lock is held only while looking up or creating an entry,
    never while the per-key lock is in use.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, key: Hashable, create: bool = False) -> Optional[threading.Lock]:
        """
        Return the lock for ``key``.

        Args:
            key: Key to look up
            create: Create the lock if the key has none yet

        Returns:
            The lock, or None if the key has none and ``create`` is False
        """
        with self._guard:
            lock = self._locks.get(key)
            if lock is None and create:
                lock = self._locks[key] = threading.Lock()
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class MemoryStore(ProductStore):
    """
    Unversioned in-memory store.

    Individual calls are thread-safe, but nothing ties a save to the state the
    caller read, so concurrent read-modify-write cycles lose updates.
    """

    def __init__(self) -> None:
        self._products = ThreadSafeCollection[Product]()
        logger.debug("Initialized unversioned in-memory store")

    def create(self, product: Product) -> Product:
        stored = product.with_version(None)
        try:
            self._products.add(stored.id, stored)
        except ValueError as e:
            raise StoreError(f"Could not create product: {e}") from e

        logger.debug(f"Created product {stored.id}: {stored.name}")
        return stored

    def get(self, product_id: UUID) -> Product:
        try:
            return self._products.get(product_id)
        except KeyError:
            raise NotFoundError(product_id) from None

    def save(self, product: Product) -> Product:
        stored = product.with_version(None)
        try:
            self._products.update(stored.id, stored)
        except KeyError:
            raise NotFoundError(stored.id) from None

        logger.debug(f"Saved product {stored.id} with stock {stored.stock}")
        return stored

    def list_all(self) -> List[Product]:
        return self._products.list_all()

    def get_changelog(self) -> List[Tuple[datetime, str, Any]]:
        return self._products.get_changelog()


class VersionedMemoryStore(VersionedProductStore):
    """
    In-memory store with optimistic concurrency control.

    Saves and reads of one id serialize on that id's lock; the lock is held for
    the duration of a dict lookup and assignment only.
    """

    def __init__(self) -> None:
        self._products: Dict[UUID, Product] = {}
        self._locks = LockTable()
        logger.debug("Initialized versioned in-memory store")

    def create(self, product: Product) -> Product:
        stored = product.with_version(0)
        with self._locks.lock_for(stored.id, create=True):
            if stored.id in self._products:
                raise StoreError(f"Could not create product: Product {stored.id} already exists")
            self._products[stored.id] = stored

        logger.debug(f"Created product {stored.id}: {stored.name} (version 0)")
        return stored

    def get(self, product_id: UUID) -> Product:
        lock = self._locks.lock_for(product_id)
        if lock is None:
            raise NotFoundError(product_id)

        with lock:
            product = self._products.get(product_id)
        if product is None:
            raise NotFoundError(product_id)
        return product

    def compare_and_save(self, product_id: UUID, payload: Product, expected_version: int) -> Product:
        lock = self._locks.lock_for(product_id)
        if lock is None:
            raise NotFoundError(product_id)

        with lock:
            current = self._products.get(product_id)
            if current is None:
                raise NotFoundError(product_id)

            if current.version != expected_version:
                logger.warning(
                    f"Version conflict on product {product_id}: "
                    f"expected {expected_version}, stored {current.version}"
                )
                raise VersionConflictError(product_id, expected_version, current.version)

            updated = Product(id=product_id, version=current.version + 1, **payload.payload())
            self._products[product_id] = updated

        logger.debug(f"Saved product {product_id} at version {updated.version}")
        return updated

    def list_all(self) -> List[Product]:
        return [self.get(product_id) for product_id in list(self._products)]
