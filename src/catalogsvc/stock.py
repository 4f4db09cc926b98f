"""Stock import reconciliation: idempotent create-or-update of catalog rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from catalogsvc.categories import (
    CategoryResolver,
    CategorySynchronizer,
    normalize_category_names,
)
from catalogsvc.exceptions import CatalogError, DuplicateNameError
from catalogsvc.mapping import row_to_product_input
from catalogsvc.models import StockImportRow
from catalogsvc.repositories.base import CatalogRepository, ProductRecord

logger = logging.getLogger(__name__)

NO_ITEMS_MESSAGE = "No stock items provided for import."


@dataclass(frozen=True)
class ImportSummary:
    """Aggregate counts for a reconciliation run."""

    processed: int = 0
    created: int = 0
    updated: int = 0
    message: str = NO_ITEMS_MESSAGE

    @classmethod
    def finished(cls, processed: int, created: int, updated: int) -> "ImportSummary":
        return cls(
            processed=processed,
            created=created,
            updated=updated,
            message=(
                f"Stock import finished. Processed: {processed}, "
                f"Products Created: {created}, Products Updated: {updated}."
            ),
        )


class StockReconciler:
    """Merges externally supplied inventory rows into the catalog."""

    def __init__(
        self,
        repository: CatalogRepository,
        resolver: Optional[CategoryResolver] = None,
        synchronizer: Optional[CategorySynchronizer] = None,
    ) -> None:
        self.repository = repository
        self.resolver = resolver or CategoryResolver(repository)
        self.synchronizer = synchronizer or CategorySynchronizer(repository)

    def reconcile(self, rows: Optional[Iterable[StockImportRow]]) -> ImportSummary:
        """Create or update one product per row; each row commits on its own."""
        items = list(rows or [])
        if not items:
            return ImportSummary()

        processed = 0
        created = 0
        updated = 0

        for index, row in enumerate(items):
            categories = normalize_category_names(row.categories)
            if not row.name.strip() or not categories:
                logger.warning("Skipping invalid stock import row %d: %r", index, row.name)
                continue

            try:
                with self.repository.transaction():
                    action = self._reconcile_row(row, categories)
            except (CatalogError, ValueError) as exc:
                logger.error(
                    "Error processing stock import row %d (%s): %s", index, row.name, exc
                )
                continue
            except Exception:
                logger.exception(
                    "Unexpected failure on stock import row %d (%s)", index, row.name
                )
                continue

            if action == "created":
                created += 1
            else:
                updated += 1
            processed += 1

        summary = ImportSummary.finished(processed, created, updated)
        logger.info(summary.message)
        return summary

    def _reconcile_row(self, row: StockImportRow, categories: list[str]) -> str:
        resolved = self.resolver.ensure_exist(categories)

        existing = self.repository.get_product_by_name(row.name)
        if existing is None:
            try:
                product = self.repository.create_product(row_to_product_input(row))
            except DuplicateNameError:
                existing = self.repository.get_product_by_name(row.name)
                if existing is None:
                    raise
            else:
                for category in resolved:
                    self.repository.link_product_category(
                        product.product_id, category.category_id
                    )
                logger.info("Created new product via stock import: %s", product.name)
                return "created"

        self._update(existing, row, categories)
        logger.info("Updated existing product via stock import: %s", existing.name)
        return "updated"

    def _update(self, existing: ProductRecord, row: StockImportRow, categories: list[str]) -> None:
        self.repository.update_product(
            existing.product_id,
            replace(
                row_to_product_input(row, description=existing.description),
                name=existing.name,
            ),
        )
        self.synchronizer.sync(existing, categories)
