"""
Line-Item Reconciler

Keeps price == unit_price x quantity after the user edits one of them.

DESIGN DECISION: Exactly one field drives each edit.
The field the user just touched is trusted and the others are
recomputed from it; the three values are never trusted independently.

    edited unit_price -> price = unit_price * quantity
    edited quantity   -> price = unit_price * quantity
                         (or unit_price = price / quantity when no unit price)
    edited price      -> unit_price = price / quantity
                         (only when a unit price already exists)

Non-positive quantities count as 1, so nothing ever divides by zero.
"""

from decimal import Decimal
from typing import Optional

from receipt_split.calculations.money import round_money
from receipt_split.models.receipt import MONEY_TOLERANCE, EditedField, ReceiptItem


HALF_CENT = Decimal("0.005")


def reconcile_item(item: ReceiptItem, changed_field: EditedField) -> ReceiptItem:
    """
    Recompute the fields derived from the one the user edited.

    Args:
        item: Line item holding the user's new value
        changed_field: Which of price / unit_price / quantity was edited

    Returns:
        A new ReceiptItem; the input is left untouched.
    """
    quantity = item.effective_quantity
    changed_field = EditedField(changed_field)

    if changed_field == EditedField.UNIT_PRICE:
        unit_price = item.unit_price if item.unit_price is not None else Decimal("0")
        return item.model_copy(update={"price": round_money(unit_price * quantity)})

    if changed_field == EditedField.QUANTITY:
        if item.unit_price is not None:
            return item.model_copy(
                update={"price": round_money(item.unit_price * quantity)}
            )
        return item.model_copy(
            update={"unit_price": round_money(item.price / quantity)}
        )

    # EditedField.PRICE
    if item.unit_price is None:
        return item
    return item.model_copy(update={"unit_price": round_money(item.price / quantity)})


def line_is_consistent(item: ReceiptItem, tolerance: Decimal = MONEY_TOLERANCE) -> bool:
    """
    Whether price matches unit_price x quantity within tolerance.

    A unit price rounded to cents can be off by half a cent per unit,
    so large quantities are allowed that much slack.
    """
    if item.unit_price is None:
        return True
    quantity = item.effective_quantity
    allowed = max(tolerance, HALF_CENT * quantity)
    return abs(item.price - item.unit_price * quantity) <= allowed


def inconsistent_lines(
    items: list[ReceiptItem],
    tolerance: Optional[Decimal] = None,
) -> list[int]:
    """Indexes of items whose price does not match unit price x quantity."""
    tolerance = MONEY_TOLERANCE if tolerance is None else tolerance
    return [
        index
        for index, item in enumerate(items)
        if not line_is_consistent(item, tolerance)
    ]
