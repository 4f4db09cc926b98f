"""Tests for record/API shape conversions."""

from decimal import Decimal

from catalogsvc.mapping import product_to_out, row_to_product_input
from catalogsvc.models import StockImportRow
from catalogsvc.repositories.base import CategoryRecord, ProductRecord


def test_product_to_out_projects_category_names() -> None:
    product = ProductRecord(
        product_id=3,
        name="Ryzen 7",
        description=None,
        price=Decimal("279.99"),
        quantity=4,
        categories=(CategoryRecord(1, "CPU"), CategoryRecord(2, "AMD")),
    )

    out = product_to_out(product)

    assert out.category_names == ["CPU", "AMD"]
    assert out.model_dump(by_alias=True)["categoryNames"] == ["CPU", "AMD"]


def test_row_to_product_input_ignores_categories() -> None:
    row = StockImportRow(name="X", categories=["CPU"], price=Decimal("5"), quantity=2)

    data = row_to_product_input(row, description="kept")

    assert (data.name, data.price, data.quantity, data.description) == (
        "X",
        Decimal("5"),
        2,
        "kept",
    )
    assert not hasattr(data, "categories")
