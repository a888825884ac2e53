# inventorylock/models/product.py
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


PAYLOAD_FIELDS = ("name", "description", "stock")


class Product(BaseModel):
    """
    A product record as held by a store.

    ``version`` is ``None`` for records of an unversioned store. Versioned
    stores start it at 0 and bump it by one on every successful save.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    description: str = ""
    stock: int = 0
    version: Optional[int] = None

    @field_validator('name')
    @classmethod
    def name_must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError('name cannot be blank')
        return v

    @field_validator('stock')
    @classmethod
    def stock_must_not_be_negative(cls, v):
        if v < 0:
            raise ValueError('stock cannot be negative')
        return v

    @field_validator('version')
    @classmethod
    def version_must_not_be_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError('version cannot be negative')
        return v

    def payload(self) -> Dict[str, Any]:
        """Domain fields only; id and version are bookkeeping."""
        return self.model_dump(include=set(PAYLOAD_FIELDS))

    def with_changes(self, **changes: Any) -> "Product":
        """Return a validated copy with the given payload fields replaced."""
        unknown = set(changes) - set(PAYLOAD_FIELDS)
        if unknown:
            raise ValueError(f"Not payload fields: {', '.join(sorted(unknown))}")
        return Product(**{**self.model_dump(), **changes})

    def with_stock(self, stock: int) -> "Product":
        return self.with_changes(stock=stock)

    def with_version(self, version: Optional[int]) -> "Product":
        return self.model_copy(update={"version": version})
