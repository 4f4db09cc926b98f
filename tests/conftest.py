"""Shared test fixtures."""

from collections.abc import Generator
from decimal import Decimal
from typing import Any, Iterable

import pytest
from fastapi.testclient import TestClient

from catalogsvc.api import create_app, limiter
from catalogsvc.categories import CategoryResolver
from catalogsvc.config import CatalogConfig
from catalogsvc.dependencies import AppResources
from catalogsvc.repositories.base import CatalogRepository, ProductInput, ProductRecord
from catalogsvc.repositories.memory import InMemoryCatalogRepository
from catalogsvc.repositories.sql import SqlCatalogRepository


def _add_product(
    repository: CatalogRepository,
    name: str,
    price: str,
    quantity: int,
    categories: Iterable[str] = (),
    description: str | None = None,
) -> ProductRecord:
    """Seed a product with its categories through the store interface."""
    resolved = CategoryResolver(repository).ensure_exist(categories)
    product = repository.create_product(
        ProductInput(
            name=name,
            price=Decimal(price),
            quantity=quantity,
            description=description,
        )
    )
    for category in resolved:
        repository.link_product_category(product.product_id, category.category_id)
    found = repository.get_product_with_categories(product.product_id)
    assert found is not None
    return found


@pytest.fixture
def seed_product():
    """Return a helper that seeds a product and its categories."""
    return _add_product


@pytest.fixture
def memory_repository() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture
def sql_repository() -> Generator[SqlCatalogRepository, None, None]:
    repository = SqlCatalogRepository.from_url("sqlite://")
    try:
        yield repository
    finally:
        repository.engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def repository(request: pytest.FixtureRequest) -> CatalogRepository:
    """Run the test against both catalog stores."""
    if request.param == "memory":
        return request.getfixturevalue("memory_repository")
    return request.getfixturevalue("sql_repository")


@pytest.fixture(autouse=True)
def reset_rate_limits() -> Generator[None, None, None]:
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def api_test_config() -> CatalogConfig:
    """Provide a test-owned API config instance."""
    return CatalogConfig(
        _env_file=None,
        database_url=None,
        allowed_origins="http://localhost:5173",
        rate_limit="1000/minute",
    )


@pytest.fixture
def api_test_app(
    api_test_config: CatalogConfig,
    memory_repository: InMemoryCatalogRepository,
) -> Generator[Any, None, None]:
    """Create a fresh FastAPI app bound to the in-memory catalog."""
    app = create_app(api_test_config)
    app.state.catalog_resources = AppResources(
        config=api_test_config,
        repository=memory_repository,
    )
    yield app


@pytest.fixture
def api_test_client(api_test_app: Any) -> Generator[TestClient, None, None]:
    """Create a TestClient for the API app."""
    with TestClient(api_test_app) as client:
        yield client
