"""Category name resolution and product link synchronization."""

from __future__ import annotations

import logging
from typing import Iterable

from catalogsvc.exceptions import CategoryNotFoundError, DuplicateNameError
from catalogsvc.repositories.base import (
    CatalogRepository,
    CategoryRecord,
    ProductRecord,
    canonical_name,
)

logger = logging.getLogger(__name__)


def normalize_category_names(names: Iterable[str]) -> list[str]:
    """Trim, drop blanks and dedupe case-insensitively; first casing wins."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in names:
        name = raw.strip()
        key = canonical_name(name)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(name)
    return result


class CategoryResolver:
    """Ensures category names exist in the catalog, creating missing ones."""

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    def ensure_exist(self, names: Iterable[str]) -> list[CategoryRecord]:
        """Return categories for the normalized names, creating those absent."""
        resolved: list[CategoryRecord] = []
        for name in normalize_category_names(names):
            category = self.repository.get_category_by_name(name)
            if category is None:
                category = self._create(name)
            resolved.append(category)
        return resolved

    def _create(self, name: str) -> CategoryRecord:
        try:
            category = self.repository.create_category(name)
        except DuplicateNameError:
            # Created concurrently between lookup and insert.
            existing = self.repository.get_category_by_name(name)
            if existing is None:
                raise
            return existing
        logger.info("Created new category: %s", category.name)
        return category


class CategorySynchronizer:
    """Applies the minimal link diff between a product and a desired name set."""

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    def sync(self, product: ProductRecord, desired_names: Iterable[str]) -> None:
        desired = {canonical_name(n): n for n in normalize_category_names(desired_names)}
        existing = {c.canonical_name: c for c in product.categories}

        to_remove = [c for key, c in existing.items() if key not in desired]
        to_add = [name for key, name in desired.items() if key not in existing]

        for category in to_remove:
            self.repository.unlink_product_category(product.product_id, category.category_id)
            logger.debug(
                "Unlinked category '%s' from product %s", category.name, product.product_id
            )

        for name in to_add:
            category = self.repository.get_category_by_name(name)
            if category is None:
                raise CategoryNotFoundError(name)
            self.repository.link_product_category(product.product_id, category.category_id)
            logger.debug("Linked category '%s' to product %s", category.name, product.product_id)
