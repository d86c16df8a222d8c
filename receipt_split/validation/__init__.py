"""Validation package."""

from receipt_split.validation.validator import ReceiptValidator, item_field

__all__ = [
    "ReceiptValidator",
    "item_field",
]
