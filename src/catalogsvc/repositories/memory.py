"""In-memory catalog store for the default service mode and tests."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, Optional

from catalogsvc.exceptions import (
    CategoryNotFoundError,
    DuplicateNameError,
    ProductNotFoundError,
)
from catalogsvc.repositories.base import (
    CatalogRepository,
    CategoryRecord,
    ProductInput,
    ProductRecord,
    canonical_name,
)


class InMemoryCatalogRepository(CatalogRepository):
    """Thread-safe in-memory storage with unique canonical-name indexes."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.reset()

    def reset(self) -> None:
        """Reset all in-memory state (used by tests)."""
        with self._lock:
            self._products: dict[int, ProductRecord] = {}
            self._products_by_name: dict[str, int] = {}
            self._categories: dict[int, CategoryRecord] = {}
            self._categories_by_name: dict[str, int] = {}
            self._links: dict[int, list[int]] = {}
            self._product_seq = 1
            self._category_seq = 1

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block atomically; state is restored if the block raises."""
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield
            except BaseException:
                self._restore(snapshot)
                raise

    def _snapshot(self) -> tuple:
        return (
            dict(self._products),
            dict(self._products_by_name),
            dict(self._categories),
            dict(self._categories_by_name),
            {pid: list(cids) for pid, cids in self._links.items()},
            self._product_seq,
            self._category_seq,
        )

    def _restore(self, snapshot: tuple) -> None:
        (
            self._products,
            self._products_by_name,
            self._categories,
            self._categories_by_name,
            self._links,
            self._product_seq,
            self._category_seq,
        ) = snapshot

    def _with_categories(self, product: ProductRecord) -> ProductRecord:
        categories = tuple(
            self._categories[cid] for cid in self._links.get(product.product_id, [])
        )
        return replace(product, categories=categories)

    def get_product_with_categories(self, product_id: int) -> Optional[ProductRecord]:
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            return self._with_categories(product)

    def get_product_by_name(self, name: str) -> Optional[ProductRecord]:
        with self._lock:
            product_id = self._products_by_name.get(canonical_name(name))
            if product_id is None:
                return None
            return self._with_categories(self._products[product_id])

    def list_products(self) -> list[ProductRecord]:
        with self._lock:
            return [self._with_categories(p) for p in self._products.values()]

    def create_product(self, data: ProductInput) -> ProductRecord:
        key = canonical_name(data.name)
        with self._lock:
            if key in self._products_by_name:
                raise DuplicateNameError("product", data.name)

            product_id = self._product_seq
            self._product_seq += 1
            product = ProductRecord(
                product_id=product_id,
                name=data.name.strip(),
                description=data.description,
                price=data.price,
                quantity=data.quantity,
            )
            self._products[product_id] = product
            self._products_by_name[key] = product_id
            self._links[product_id] = []
            return product

    def update_product(self, product_id: int, data: ProductInput) -> ProductRecord:
        key = canonical_name(data.name)
        with self._lock:
            current = self._products.get(product_id)
            if current is None:
                raise ProductNotFoundError(product_id)

            owner = self._products_by_name.get(key)
            if owner is not None and owner != product_id:
                raise DuplicateNameError("product", data.name)

            product = replace(
                current,
                name=data.name.strip(),
                description=data.description,
                price=data.price,
                quantity=data.quantity,
            )
            del self._products_by_name[current.canonical_name]
            self._products_by_name[key] = product_id
            self._products[product_id] = product
            return self._with_categories(product)

    def get_category_by_name(self, name: str) -> Optional[CategoryRecord]:
        with self._lock:
            category_id = self._categories_by_name.get(canonical_name(name))
            if category_id is None:
                return None
            return self._categories[category_id]

    def create_category(self, name: str, description: Optional[str] = None) -> CategoryRecord:
        key = canonical_name(name)
        if not key:
            raise ValueError("category name must not be blank")
        with self._lock:
            if key in self._categories_by_name:
                raise DuplicateNameError("category", name)

            category = CategoryRecord(
                category_id=self._category_seq,
                name=name.strip(),
                description=description,
            )
            self._category_seq += 1
            self._categories[category.category_id] = category
            self._categories_by_name[key] = category.category_id
            return category

    def link_product_category(self, product_id: int, category_id: int) -> None:
        with self._lock:
            if product_id not in self._products:
                raise ProductNotFoundError(product_id)
            if category_id not in self._categories:
                raise CategoryNotFoundError(category_id)
            links = self._links.setdefault(product_id, [])
            if category_id not in links:
                links.append(category_id)

    def unlink_product_category(self, product_id: int, category_id: int) -> None:
        with self._lock:
            links = self._links.get(product_id)
            if links and category_id in links:
                links.remove(category_id)
