"""Repository interfaces for catalog persistence."""

from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Protocol


def canonical_name(value: str) -> str:
    """Trimmed, case-folded form used for name uniqueness."""
    return value.strip().casefold()


@dataclass(frozen=True)
class CategoryRecord:
    """Persisted category shape."""

    category_id: int
    name: str
    description: Optional[str] = None

    @property
    def canonical_name(self) -> str:
        return canonical_name(self.name)


@dataclass(frozen=True)
class ProductRecord:
    """Persisted product shape with linked categories in link order."""

    product_id: int
    name: str
    description: Optional[str]
    price: Decimal
    quantity: int
    categories: tuple[CategoryRecord, ...] = field(default_factory=tuple)

    @property
    def canonical_name(self) -> str:
        return canonical_name(self.name)


@dataclass(frozen=True)
class ProductInput:
    """Input payload for create/update product operations."""

    name: str
    price: Decimal
    quantity: int
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must not be blank")
        if self.price <= 0:
            raise ValueError("price must be positive")
        if self.quantity < 0:
            raise ValueError("quantity cannot be negative")


class CatalogRepository(Protocol):
    """Persistence operations required by the discount engine and reconciler."""

    def get_product_with_categories(self, product_id: int) -> Optional[ProductRecord]:
        ...

    def get_product_by_name(self, name: str) -> Optional[ProductRecord]:
        ...

    def list_products(self) -> list[ProductRecord]:
        ...

    def create_product(self, data: ProductInput) -> ProductRecord:
        ...

    def update_product(self, product_id: int, data: ProductInput) -> ProductRecord:
        ...

    def get_category_by_name(self, name: str) -> Optional[CategoryRecord]:
        ...

    def create_category(self, name: str, description: Optional[str] = None) -> CategoryRecord:
        ...

    def link_product_category(self, product_id: int, category_id: int) -> None:
        ...

    def unlink_product_category(self, product_id: int, category_id: int) -> None:
        ...

    def transaction(self) -> AbstractContextManager[None]:
        ...
