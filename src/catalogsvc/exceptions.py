"""Custom exceptions for API contract and catalog errors."""

from typing import Any, Dict, Optional


class ContractError(Exception):
    """Error that maps to a stable API error payload."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class CatalogError(ContractError):
    """Business failure raised by the catalog store or core services."""


class DuplicateNameError(CatalogError):
    """A product or category with the same canonical name already exists."""

    def __init__(self, entity: str, name: str) -> None:
        super().__init__(
            "DUPLICATE_NAME",
            f"{entity.capitalize()} with name '{name}' already exists.",
            status_code=409,
            details={"entity": entity, "name": name},
        )
        self.entity = entity
        self.name = name


class ProductNotFoundError(CatalogError):
    """Unknown product id."""

    def __init__(self, product_id: int) -> None:
        super().__init__(
            "PRODUCT_NOT_FOUND",
            f"Product with ID {product_id} not found.",
            status_code=404,
            details={"product_id": product_id},
        )
        self.product_id = product_id


class CategoryNotFoundError(CatalogError):
    """Unknown category id or name."""

    def __init__(self, ref: Any) -> None:
        super().__init__(
            "CATEGORY_NOT_FOUND",
            f"Category '{ref}' not found.",
            status_code=404,
            details={"category": ref},
        )
        self.ref = ref


class StorageFault(ContractError):
    """Unexpected persistence failure. Never retried."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            "STORAGE_FAULT",
            message,
            status_code=500,
            details=details,
        )
