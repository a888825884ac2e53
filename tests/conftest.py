"""
conftest.py - Shared fixtures for store tests

Store fixtures are parametrised over both backends so every behavioural test
runs against the in-memory and the SQLite implementation.
"""
import pytest

from inventorylock.models.product import Product
from inventorylock.store import get_store


BACKENDS = ["memory", "sqlite"]


def _make_store(backend, versioned, tmp_path):
    db_path = tmp_path / f"{'versioned' if versioned else 'plain'}.db"
    return get_store(backend, versioned=versioned, db_path=db_path)


@pytest.fixture(params=BACKENDS)
def unversioned_store(request, tmp_path):
    """An unversioned store for each backend."""
    store = _make_store(request.param, False, tmp_path)
    yield store
    store.close()


@pytest.fixture(params=BACKENDS)
def versioned_store(request, tmp_path):
    """A versioned store for each backend."""
    store = _make_store(request.param, True, tmp_path)
    yield store
    store.close()


@pytest.fixture
def sample_product():
    """The product used by the lost-update scenario."""
    return Product(name="Product 1", description="Description 1", stock=100)


@pytest.fixture
def versioned_sample_product():
    """The product used by the optimistic locking scenario."""
    return Product(name="Product 1", description="Description 1", stock=50)
