"""
Totals Verifier

Recomputes subtotal / tax / total from the items and compares the result
with the total printed on the receipt.

IMPORTANT: The comparison is advisory. A mismatch is reported to the
caller as a warning; it is never corrected silently and it never blocks
saving or exporting.
"""

from decimal import Decimal
from typing import Optional

from receipt_split.calculations.money import round_money
from receipt_split.calculations.tax import compute_tax, subtotal
from receipt_split.models.receipt import (
    MONEY_TOLERANCE,
    ReceiptData,
    ReceiptItem,
    TaxConfig,
    TotalsCheck,
)


def verify_totals(
    items: list[ReceiptItem],
    tax: Decimal,
    reported_total: Optional[Decimal] = None,
    tip: Decimal = Decimal("0"),
    tolerance: Decimal = MONEY_TOLERANCE,
) -> TotalsCheck:
    """
    Recompute totals and flag disagreement with a reported total.

    Args:
        items: Line items (taxable and non-taxable alike count toward subtotal)
        tax: Tax amount from the tax resolver
        reported_total: Total extracted by OCR, if any
        tip: Tip or gratuity, 0 when absent
        tolerance: Largest difference that is not a mismatch

    Returns:
        TotalsCheck with delta = total - reported_total
    """
    items_subtotal = round_money(subtotal(items))
    tax = round_money(tax)
    tip = round_money(tip)
    total = items_subtotal + tax + tip

    delta = None
    mismatch = False
    if reported_total is not None:
        delta = total - round_money(reported_total)
        mismatch = abs(delta) > tolerance

    return TotalsCheck(
        subtotal=items_subtotal,
        tax=tax,
        tip=tip,
        total=total,
        reported_total=reported_total,
        delta=delta,
        mismatch=mismatch,
    )


def check_receipt(receipt: ReceiptData, tolerance: Decimal = MONEY_TOLERANCE) -> TotalsCheck:
    """Verify a receipt's current items and tax against its printed total."""
    return verify_totals(
        receipt.items,
        receipt.tax,
        reported_total=receipt.reported_total,
        tip=receipt.tip,
        tolerance=tolerance,
    )


def recalculate_receipt(receipt: ReceiptData, tax_config: Optional[TaxConfig]) -> ReceiptData:
    """
    Derive subtotal, tax and total from the items and tax configuration.

    Called after every edit. With no tax configuration the receipt keeps
    its current tax amount (e.g. the value backfilled at ingestion).
    """
    tax = receipt.tax if tax_config is None else compute_tax(receipt.items, tax_config)
    check = verify_totals(receipt.items, tax, tip=receipt.tip)
    return receipt.model_copy(
        update={
            "subtotal": check.subtotal,
            "tax": check.tax,
            "total": check.total,
        }
    )
