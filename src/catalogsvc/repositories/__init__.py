"""Catalog store implementations."""

from catalogsvc.repositories.base import (
    CatalogRepository,
    CategoryRecord,
    ProductInput,
    ProductRecord,
)
from catalogsvc.repositories.memory import InMemoryCatalogRepository

__all__ = [
    "CatalogRepository",
    "CategoryRecord",
    "InMemoryCatalogRepository",
    "ProductInput",
    "ProductRecord",
]
