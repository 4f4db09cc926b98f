"""Explicit conversions between store records and API shapes."""

from typing import Optional

from catalogsvc.models import ProductOut, StockImportRow
from catalogsvc.repositories.base import ProductInput, ProductRecord


def product_to_out(product: ProductRecord) -> ProductOut:
    """Project a product with its category names in link order."""
    return ProductOut(
        id=product.product_id,
        name=product.name,
        description=product.description,
        price=product.price,
        quantity=product.quantity,
        category_names=[c.name for c in product.categories],
    )


def row_to_product_input(
    row: StockImportRow, *, description: Optional[str] = None
) -> ProductInput:
    """Scalar fields only; category links are resolved separately."""
    return ProductInput(
        name=row.name,
        price=row.price,
        quantity=row.quantity,
        description=description,
    )
