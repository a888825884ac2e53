# tests/test_models.py
import uuid

import pytest
from pydantic import ValidationError

from inventorylock.models.product import Product


def test_product_defaults():
    product = Product(name="Widget")

    assert isinstance(product.id, uuid.UUID)
    assert product.description == ""
    assert product.stock == 0
    assert product.version is None


def test_products_get_distinct_ids():
    assert Product(name="Widget").id != Product(name="Widget").id


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_name_rejected(name):
    with pytest.raises(ValidationError):
        Product(name=name)


def test_negative_stock_rejected():
    with pytest.raises(ValidationError):
        Product(name="Widget", stock=-1)


def test_negative_version_rejected():
    with pytest.raises(ValidationError):
        Product(name="Widget", version=-1)


def test_product_is_immutable():
    product = Product(name="Widget", stock=5)

    with pytest.raises(ValidationError):
        product.stock = 10


def test_payload_excludes_bookkeeping_fields():
    product = Product(name="Widget", description="Blue", stock=5, version=3)

    assert product.payload() == {"name": "Widget", "description": "Blue", "stock": 5}


def test_with_stock_keeps_identity_and_version():
    product = Product(name="Widget", stock=5, version=3)

    updated = product.with_stock(10)

    assert updated.stock == 10
    assert updated.id == product.id
    assert updated.version == 3
    assert product.stock == 5


def test_with_changes_validates():
    product = Product(name="Widget", stock=5)

    with pytest.raises(ValidationError):
        product.with_stock(-5)


def test_with_changes_rejects_non_payload_fields():
    product = Product(name="Widget")

    with pytest.raises(ValueError, match="version"):
        product.with_changes(version=7)


def test_with_version():
    product = Product(name="Widget")

    assert product.with_version(2).version == 2
    assert product.with_version(2).with_version(None).version is None
