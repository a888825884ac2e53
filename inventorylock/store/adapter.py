"""
store/adapter.py - Store interface for inventorylock

Every store exposes the same read and write operations so that a writer can be
written once and pointed at any of them:

    get(id)        -> Product        raises NotFoundError
    save(product)  -> Product        raises NotFoundError (and, for versioned
                                     stores, VersionConflictError)

Unversioned stores overwrite unconditionally. Versioned stores treat
``product.version`` as the version the caller read and reject the save when it
no longer matches the stored one.
"""

import abc
from typing import List
from uuid import UUID

from ..models.product import Product


class ProductStore(abc.ABC):
    """
    Abstract base class for all product stores.

    Stores hand out copies; mutating a returned record never changes
    stored state.
    """

    #: Whether saves are checked against the version the caller read
    versioned: bool = False

    @abc.abstractmethod
    def create(self, product: Product) -> Product:
        """
        Insert a new product.

        Args:
            product: The product to insert

        Returns:
            The stored record (with version 0 for versioned stores)

        Raises:
            StoreError: If a product with the same id already exists
        """
        pass

    @abc.abstractmethod
    def get(self, product_id: UUID) -> Product:
        """
        Get the current state of a product.

        Raises:
            NotFoundError: If no product has this id
        """
        pass

    @abc.abstractmethod
    def save(self, product: Product) -> Product:
        """
        Replace the stored payload of an existing product.

        Raises:
            NotFoundError: If no product has this id
            VersionConflictError: Versioned stores only, if ``product.version``
                is stale
        """
        pass

    @abc.abstractmethod
    def list_all(self) -> List[Product]:
        """Return every current record."""
        pass

    def close(self) -> None:
        """Release any resources held by the store."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class VersionedProductStore(ProductStore):
    """
    A store performing optimistic concurrency control.

    ``save`` is a thin wrapper around ``compare_and_save`` using the version
    carried by the record, so callers that read a record, change it and hand it
    back get the version check for free.
    """

    versioned = True

    def save(self, product: Product) -> Product:
        if product.version is None:
            raise ValueError(f"Product {product.id} carries no version to compare against")
        return self.compare_and_save(product.id, product, product.version)

    @abc.abstractmethod
    def compare_and_save(self, product_id: UUID, payload: Product, expected_version: int) -> Product:
        """
        Atomically check the stored version and replace the payload.

        1. Missing id: raise NotFoundError.
        2. ``expected_version`` differs from the stored version: raise
           VersionConflictError and leave the record untouched.
        3. Otherwise store ``payload``'s domain fields, bump the version by
           one and return the new record.
        """
        pass

