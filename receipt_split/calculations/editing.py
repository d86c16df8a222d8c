"""
Receipt editing operations.

Each function takes the current receipt snapshot and returns a new one.
The caller holds the "current" receipt and threads it through these
calls; totals are re-derived afterwards with recalculate_receipt().
"""

from typing import Any

from receipt_split.calculations.money import to_money, to_quantity
from receipt_split.calculations.reconciler import reconcile_item
from receipt_split.models.receipt import EditedField, ReceiptData, ReceiptItem


NUMERIC_FIELDS = {
    "price": EditedField.PRICE,
    "unit_price": EditedField.UNIT_PRICE,
    "quantity": EditedField.QUANTITY,
}


def update_item(receipt: ReceiptData, index: int, field: str, value: Any) -> ReceiptData:
    """
    Store a user edit on one line item.

    Numeric fields are normalized and the item is reconciled with the
    edited field as the driver. description and taxable are stored as given.

    Raises:
        IndexError: If index does not address an item
        ValueError: If field is not an editable item field
    """
    item = receipt.items[index]

    if field in NUMERIC_FIELDS:
        edited = NUMERIC_FIELDS[field]
        number = to_quantity(value) if edited == EditedField.QUANTITY else to_money(value)
        item = reconcile_item(item.model_copy(update={field: number}), edited)
    elif field == "description":
        item = item.model_copy(update={"description": str(value).strip()})
    elif field == "taxable":
        item = item.model_copy(update={"taxable": bool(value)})
    else:
        raise ValueError(f"Field cannot be edited: {field}")

    items = list(receipt.items)
    items[index] = item
    return receipt.model_copy(update={"items": items})


def add_item(receipt: ReceiptData) -> ReceiptData:
    """
    Append a blank line item.

    The new item has no involvement of its own and follows the receipt level.
    """
    blank = ReceiptItem(description="", price=to_money(0), unit_price=to_money(0))
    return receipt.model_copy(update={"items": [*receipt.items, blank]})


def remove_item(receipt: ReceiptData, index: int) -> ReceiptData:
    """Remove one line item."""
    items = list(receipt.items)
    del items[index]
    return receipt.model_copy(update={"items": items})


def toggle_taxable(receipt: ReceiptData, index: int) -> ReceiptData:
    """Flip whether one item counts toward the taxable subtotal."""
    return update_item(receipt, index, "taxable", not receipt.items[index].taxable)
