"""Basket pricing under the category co-occurrence discount rule.

A category is discount-eligible when the basket holds more than one unit
across all products that carry it. Every product carrying an eligible
category gets one unit discounted by 5%, never more than once per product
and never scaled by its requested quantity.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from catalogsvc.models import BasketItem, DiscountResult
from catalogsvc.repositories.base import CatalogRepository, ProductRecord

logger = logging.getLogger(__name__)

CATEGORY_DISCOUNT_RATE = Decimal("0.05")
_CENTS = Decimal("0.01")

NO_DISCOUNT_TRIVIAL = "No discount applied (single item or single product type)."
NO_DISCOUNT_APPLICABLE = "No category discounts applicable based on basket contents."


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def is_trivial_basket(items: Sequence[BasketItem]) -> bool:
    """One entry holding a single unit, or less."""
    return sum(item.quantity for item in items) <= 1 and len(items) <= 1


def eligible_category_ids(
    items: Sequence[BasketItem], products: dict[int, ProductRecord]
) -> set[int]:
    """Category ids whose aggregate requested quantity exceeds one."""
    totals: dict[int, int] = defaultdict(int)
    for item in items:
        for category in products[item.product_id].categories:
            totals[category.category_id] += item.quantity
    return {category_id for category_id, total in totals.items() if total > 1}


class DiscountEngine:
    """Read-only basket pricer over the catalog store."""

    def __init__(self, repository: CatalogRepository, *, currency_symbol: str = "$") -> None:
        self.repository = repository
        self.currency_symbol = currency_symbol

    def _format_amount(self, amount: Decimal) -> str:
        return f"{self.currency_symbol}{_money(amount):,.2f}"

    def calculate(self, items: Sequence[BasketItem]) -> DiscountResult:
        products: dict[int, ProductRecord] = {}
        original_total = Decimal("0")

        for item in items:
            product = products.get(item.product_id)
            if product is None:
                product = self.repository.get_product_with_categories(item.product_id)
            if product is None:
                logger.warning(
                    "Discount calculation failed: product not found (ID: %s)", item.product_id
                )
                return DiscountResult.rejected(
                    f"Product with ID {item.product_id} not found.",
                    original_total=original_total,
                )
            if product.quantity < item.quantity:
                logger.warning(
                    "Discount calculation failed: insufficient stock for %s (ID: %s). "
                    "Requested: %s, Available: %s",
                    product.name,
                    item.product_id,
                    item.quantity,
                    product.quantity,
                )
                return DiscountResult.rejected(
                    f"Not enough stock for product '{product.name}'. "
                    f"Requested: {item.quantity}, Available: {product.quantity}.",
                    original_total=original_total,
                )

            products[item.product_id] = product
            original_total += product.price * item.quantity

        if is_trivial_basket(items):
            return DiscountResult(
                original_total=original_total,
                discount_amount=Decimal("0"),
                final_total=original_total,
                applied_discount_messages=[NO_DISCOUNT_TRIVIAL],
            )

        eligible = eligible_category_ids(items, products)
        messages: list[str] = []
        discount_total = Decimal("0")
        discounted: set[int] = set()

        for item in items:
            if item.product_id in discounted:
                continue
            product = products[item.product_id]
            category = next(
                (c for c in product.categories if c.category_id in eligible), None
            )
            if category is None:
                continue

            discount = _money(product.price * CATEGORY_DISCOUNT_RATE)
            discount_total += discount
            discounted.add(item.product_id)
            messages.append(
                f"Applied 5% discount ({self._format_amount(discount)}) to first copy "
                f"of '{product.name}' for category '{category.name}'."
            )

        if not discounted:
            messages.append(NO_DISCOUNT_APPLICABLE)

        discount_amount = _money(discount_total)
        result = DiscountResult(
            original_total=original_total,
            discount_amount=discount_amount,
            final_total=original_total - discount_amount,
            applied_discount_messages=messages,
        )
        logger.info(
            "Discount calculation successful. Original: %s, Discount: %s, Final: %s",
            result.original_total,
            result.discount_amount,
            result.final_total,
        )
        return result
