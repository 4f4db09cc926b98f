"""Shared FastAPI app resource container and provider dependencies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import cast

from fastapi import Depends, HTTPException, Request, status

from catalogsvc.config import CatalogConfig
from catalogsvc.discount import DiscountEngine
from catalogsvc.repositories.base import CatalogRepository
from catalogsvc.repositories.memory import InMemoryCatalogRepository
from catalogsvc.stock import StockReconciler


@dataclass
class AppResources:
    """App-scoped resources initialized during FastAPI lifespan."""

    config: CatalogConfig
    repository: CatalogRepository


def build_repository(config: CatalogConfig) -> CatalogRepository:
    """Select the catalog store from configuration."""
    if not config.database_url:
        return InMemoryCatalogRepository()

    from catalogsvc.repositories.sql import SqlCatalogRepository

    return SqlCatalogRepository.from_url(config.database_url, echo=config.database_echo)


def get_app_resources(request: Request) -> AppResources:
    """Return initialized app resources from state."""
    resources = getattr(request.app.state, "catalog_resources", None)
    if resources is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Application resources are not initialized",
        )
    return cast(AppResources, resources)


def get_app_config(resources: AppResources = Depends(get_app_resources)) -> CatalogConfig:
    """Get app-scoped config instance."""
    return resources.config


def get_catalog_repository(
    resources: AppResources = Depends(get_app_resources),
) -> CatalogRepository:
    """Get app-scoped catalog store."""
    return resources.repository


def get_discount_engine(
    config: CatalogConfig = Depends(get_app_config),
    repository: CatalogRepository = Depends(get_catalog_repository),
) -> DiscountEngine:
    """Get discount engine instance (per-request)."""
    return DiscountEngine(repository, currency_symbol=config.currency_symbol)


def get_stock_reconciler(
    repository: CatalogRepository = Depends(get_catalog_repository),
) -> StockReconciler:
    """Get stock reconciler instance (per-request)."""
    return StockReconciler(repository)
