"""Catalog service: stock import reconciliation and basket discounts."""

__version__ = "0.1.0"
