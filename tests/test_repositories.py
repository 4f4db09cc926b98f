"""Tests for the catalog store implementations."""

import threading
from decimal import Decimal

import pytest
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

from catalogsvc.exceptions import (
    CategoryNotFoundError,
    DuplicateNameError,
    ProductNotFoundError,
    StorageFault,
)
from catalogsvc.repositories.base import ProductInput, canonical_name
from catalogsvc.repositories.sql import CategoryRow, SqlCatalogRepository


def _input(name: str, price: str = "10.00", quantity: int = 1, description=None) -> ProductInput:
    return ProductInput(
        name=name, price=Decimal(price), quantity=quantity, description=description
    )


def test_canonical_name_trims_and_folds_case() -> None:
    assert canonical_name("  Straße ") == "strasse"
    assert canonical_name("CPU") == canonical_name("cpu ")


def test_product_input_validates_fields() -> None:
    with pytest.raises(ValueError, match="price must be positive"):
        _input("X", price="0")
    with pytest.raises(ValueError, match="quantity cannot be negative"):
        _input("X", quantity=-1)
    with pytest.raises(ValueError, match="name must not be blank"):
        _input("  ")


def test_product_names_are_unique_case_insensitively(repository) -> None:
    repository.create_product(_input("Keyboard"))
    with pytest.raises(DuplicateNameError) as exc_info:
        repository.create_product(_input(" KEYBOARD "))
    assert exc_info.value.status_code == 409


def test_update_to_taken_name_is_rejected(repository) -> None:
    repository.create_product(_input("Keyboard"))
    mouse = repository.create_product(_input("Mouse"))

    with pytest.raises(DuplicateNameError):
        repository.update_product(mouse.product_id, _input("keyboard"))

    assert repository.get_product_with_categories(mouse.product_id).name == "Mouse"


def test_update_unknown_product_raises(repository) -> None:
    with pytest.raises(ProductNotFoundError):
        repository.update_product(42, _input("Ghost"))


def test_link_is_unique_per_pair(repository) -> None:
    product = repository.create_product(_input("Keyboard"))
    category = repository.create_category("Input")

    repository.link_product_category(product.product_id, category.category_id)
    repository.link_product_category(product.product_id, category.category_id)

    found = repository.get_product_with_categories(product.product_id)
    assert [c.name for c in found.categories] == ["Input"]


def test_link_unknown_category_raises(repository) -> None:
    product = repository.create_product(_input("Keyboard"))
    with pytest.raises(CategoryNotFoundError):
        repository.link_product_category(product.product_id, 99)


def test_unlink_missing_pair_is_noop(repository) -> None:
    product = repository.create_product(_input("Keyboard"))
    repository.unlink_product_category(product.product_id, 99)


def test_transaction_rolls_back_on_error(repository) -> None:
    with pytest.raises(RuntimeError):
        with repository.transaction():
            repository.create_category("Audio")
            repository.create_product(_input("Headset"))
            raise RuntimeError("boom")

    assert repository.get_category_by_name("audio") is None
    assert repository.get_product_by_name("headset") is None


def test_transaction_commits_on_success(repository) -> None:
    with repository.transaction():
        repository.create_category("Audio")

    assert repository.get_category_by_name("AUDIO").name == "Audio"


def test_duplicate_inside_transaction_keeps_earlier_work(repository) -> None:
    with repository.transaction():
        repository.create_category("Audio")
        with pytest.raises(DuplicateNameError):
            repository.create_category("audio")
        repository.create_category("Video")

    assert repository.get_category_by_name("audio") is not None
    assert repository.get_category_by_name("video") is not None


def test_sql_unique_index_backs_canonical_names(sql_repository) -> None:
    sql_repository.create_category("CPU")

    with sql_repository.engine.begin() as conn:
        with pytest.raises(IntegrityError):
            conn.execute(
                insert(CategoryRow).values(name="cpu", name_canonical="cpu")
            )


def test_sql_missing_schema_is_storage_fault() -> None:
    repository = SqlCatalogRepository.from_url("sqlite://", create_schema=False)
    try:
        with pytest.raises(StorageFault) as exc_info:
            repository.list_products()
        assert exc_info.value.code == "STORAGE_FAULT"
    finally:
        repository.engine.dispose()


def test_sql_store_persists_across_instances(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'catalog.db'}"
    first = SqlCatalogRepository.from_url(url)
    product = first.create_product(_input("Monitor", price="199.90", quantity=4))
    category = first.create_category("Displays")
    first.link_product_category(product.product_id, category.category_id)
    first.engine.dispose()

    second = SqlCatalogRepository.from_url(url)
    try:
        found = second.get_product_by_name("monitor")
        assert found.price == Decimal("199.90")
        assert found.quantity == 4
        assert [c.name for c in found.categories] == ["Displays"]
    finally:
        second.engine.dispose()


def test_memory_reset_clears_state(memory_repository) -> None:
    memory_repository.create_product(_input("Keyboard"))
    memory_repository.reset()
    assert memory_repository.list_products() == []


def test_sql_shared_connection_serializes_transactions(sql_repository) -> None:
    first_open = threading.Event()
    release_first = threading.Event()
    second_done = threading.Event()

    def _hold_transaction() -> None:
        with sql_repository.transaction():
            sql_repository.create_category("A")
            first_open.set()
            release_first.wait(timeout=5)

    def _second_transaction() -> None:
        with sql_repository.transaction():
            sql_repository.create_category("B")
        second_done.set()

    holder = threading.Thread(target=_hold_transaction)
    holder.start()
    assert first_open.wait(timeout=5)

    waiter = threading.Thread(target=_second_transaction)
    waiter.start()
    assert not second_done.wait(timeout=0.2)

    release_first.set()
    holder.join(timeout=5)
    waiter.join(timeout=5)

    assert second_done.is_set()
    assert sql_repository.get_category_by_name("A") is not None
    assert sql_repository.get_category_by_name("B") is not None
