"""Pydantic request/response models for basket pricing and stock import."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BasketItem(CamelModel):
    """Single basket entry submitted for pricing."""

    product_id: int = Field(..., description="Catalog product id")
    quantity: int = Field(..., ge=1, description="Requested units, at least 1")


class DiscountCalculationRequest(CamelModel):
    """Request payload for the discount endpoint."""

    items: List[BasketItem] = Field(..., min_length=1)


class DiscountResult(CamelModel):
    """Priced basket, or a business rejection when success is False."""

    original_total: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    final_total: Decimal = Decimal("0")
    applied_discount_messages: List[str] = Field(default_factory=list)
    success: bool = True
    error_message: Optional[str] = None

    @classmethod
    def rejected(cls, message: str, *, original_total: Decimal) -> "DiscountResult":
        return cls(success=False, error_message=message, original_total=original_total)


class StockImportRow(CamelModel):
    """Externally supplied inventory row."""

    name: str = Field(..., max_length=200)
    categories: List[str] = Field(default_factory=list)
    price: Decimal = Field(..., gt=0, max_digits=18, decimal_places=2)
    quantity: int = Field(..., ge=0)


class StockImportResponse(BaseModel):
    """Response payload for the stock import endpoint."""

    message: str


class ProductOut(CamelModel):
    """Product projection with category names."""

    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    quantity: int
    category_names: List[str] = Field(default_factory=list)
