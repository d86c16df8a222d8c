"""
Spreadsheet Row Builder

Turns a reconciled receipt into the rows the shared expense sheet expects:

    date | itemDescription | expenseTypeCode | price | paidBy |
    vendorName | averagePerPerson | <one column per housemate>

Row layout (ExportGrouping.AUTO):
- Receipt-level split -> a single row for the whole receipt
- Item-level split    -> one row per distinct group of people sharing items

ExportGrouping.PER_ITEM writes one row per line item instead.

Row prices include each item's slice of tax and tip, so the rows of a
receipt add up to its total (within a cent per row).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from receipt_split.calculations.apportionment import (
    compute_shares,
    item_costs,
    on_roster,
    resolve_item_involvement,
    resolve_roster,
    sharing_groups,
)
from receipt_split.calculations.money import round_money
from receipt_split.models.receipt import (
    Apportionment,
    ApportionmentMode,
    ExportGrouping,
    ExportRow,
    ExportRowSet,
    ReceiptData,
)


UNKNOWN_VENDOR = "Unknown Vendor"
AVERAGE_PLACES = Decimal("0.0001")


class UnapportionedReceiptError(ValueError):
    """Raised when rows are requested for a receipt nobody is sharing."""

    def __init__(self, apportionment: Apportionment):
        self.apportionment = apportionment
        super().__init__(apportionment.message or "Receipt could not be split")


def _average(amount: Decimal, people: int) -> Decimal:
    return (amount / people).quantize(AVERAGE_PLACES, rounding=ROUND_HALF_UP)


def _row(
    receipt: ReceiptData,
    description: str,
    amount: Decimal,
    people: list[str],
) -> ExportRow:
    average = _average(amount, len(people))
    return ExportRow(
        date=receipt.date,
        item_description=description,
        expense_type_code=int(receipt.expense_type),
        price=round_money(amount),
        paid_by=receipt.paid_by or "",
        vendor_name=receipt.vendor or UNKNOWN_VENDOR,
        average_per_person=average,
        participant_shares={name: average for name in people},
    )


def build_export_rows(
    receipt: ReceiptData,
    participants: Optional[list[str]] = None,
    grouping: ExportGrouping = ExportGrouping.AUTO,
    tax_allocation: Optional[str] = None,
) -> ExportRowSet:
    """
    Build the spreadsheet rows for one receipt.

    Args:
        receipt: Reconciled receipt (totals already derived)
        participants: Ordered roster; defaults to the configured household
        grouping: AUTO or PER_ITEM
        tax_allocation: Basis for spreading tax; defaults to configuration

    Returns:
        ExportRowSet carrying the rows and the receipt's backup file id

    Raises:
        UnapportionedReceiptError: If the receipt (or one of its items)
                                   has nobody to split with
    """
    roster = resolve_roster(participants)
    apportionment = compute_shares(receipt, roster, tax_allocation)
    if not apportionment.ok:
        raise UnapportionedReceiptError(apportionment)

    rows = []
    costs = item_costs(receipt, tax_allocation)

    if grouping == ExportGrouping.PER_ITEM:
        for item, cost in zip(receipt.items, costs):
            if cost <= 0:
                continue
            people = on_roster(resolve_item_involvement(item, receipt), roster)
            rows.append(_row(receipt, item.description, cost, people))

    elif apportionment.mode == ApportionmentMode.RECEIPT:
        people = on_roster(receipt.involved_participants, roster)
        rows.append(_row(receipt, receipt.vendor or UNKNOWN_VENDOR, receipt.total, people))

    else:
        for people, indexes in sharing_groups(receipt, roster):
            amount = sum((costs[index] for index in indexes), Decimal("0"))
            description = ", ".join(receipt.items[index].description for index in indexes)
            rows.append(_row(receipt, description, amount, list(people)))

    return ExportRowSet(
        participants=roster,
        rows=rows,
        grouping=grouping,
        file_id=receipt.file_id,
    )
