"""
OCR Ingestion Sanitizer

First contact with whatever the OCR collaborator returned. Maps an untyped
payload into the canonical ReceiptData shape.

IMPORTANT: sanitize() never raises. Missing or malformed fields are replaced
with safe defaults (0, "Unknown Item", today's date) and a debug log line
records the substitution. A structurally complete receipt, possibly all
zeros, always comes out.

Backfill order:
1. Items (quantity, unit price, price, taxable, involvement)
2. Subtotal  - payload value, raw-text match, or sum of item prices
3. Tax       - payload value, raw-text match, or default rate x subtotal
4. Tip       - payload value, raw-text match, or 0
5. Total     - payload value when non-zero, else subtotal + tax + tip
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

import structlog

from receipt_split.calculations.money import (
    effective_quantity,
    is_blank,
    round_money,
    to_money,
    to_quantity,
    to_rate,
)
from receipt_split.calculations.tax import rate_tax, subtotal
from receipt_split.config import get_settings
from receipt_split.ingestion.involvement import involvement_from_payload
from receipt_split.models.receipt import ExpenseType, ReceiptData, ReceiptItem


logger = structlog.get_logger(__name__)

DEFAULT_DESCRIPTION = "Unknown Item"
MAX_TEXT_LENGTH = 200

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y.%m.%d",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
]

# Amount lines printed on the receipt, read from the raw OCR text
_RAW_AMOUNT_PATTERNS = {
    "subtotal": re.compile(r"(?:subtotal|sub-total|sub total)[:\s]*\$?(\d+\.\d{2})", re.IGNORECASE),
    "tax": re.compile(r"(?<!sub)(?:tax|hst|gst)[:\s]*\$?(\d+\.\d{2})", re.IGNORECASE),
    "tip": re.compile(r"(?:tip|gratuity)[:\s]*\$?(\d+\.\d{2})", re.IGNORECASE),
}


def normalize_date(value: Any, today: Optional[date] = None) -> str:
    """
    Coerce a date to ISO 8601.

    Absent dates become today. Text that matches no known format is kept
    as read so ingestion never fails on a date.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if is_blank(value):
        return (today or date.today()).isoformat()

    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        logger.debug("unparseable_date_kept", value=text)
        return text


def recover_amounts(raw_text: Optional[str]) -> dict[str, Decimal]:
    """Subtotal, tax and tip found in the printed receipt text."""
    if not raw_text:
        return {}
    found = {}
    for name, pattern in _RAW_AMOUNT_PATTERNS.items():
        match = pattern.search(raw_text)
        if match:
            found[name] = to_money(match.group(1))
    return found


def sanitize_item(raw: Mapping[str, Any]) -> ReceiptItem:
    """
    Build one canonical item from a raw OCR item.

    A zero or missing price is treated as absent and derived from the unit
    price; a missing unit price is derived from the price.
    """
    description = raw.get("name") or raw.get("description")
    description = str(description).strip() if description is not None else ""
    if not description:
        description = DEFAULT_DESCRIPTION
    description = description[:MAX_TEXT_LENGTH]

    quantity = to_quantity(raw.get("quantity"))
    if quantity <= 0:
        quantity = Decimal("1")
    q = effective_quantity(quantity)

    price_raw = raw.get("price")
    unit_raw = raw.get("unit_price", raw.get("unitPrice"))
    price = to_money(price_raw)

    if not is_blank(unit_raw):
        unit_price = to_money(unit_raw)
        if price == 0:
            price = round_money(unit_price * q)
    else:
        unit_price = round_money(price / q)

    taxable = raw.get("taxable")
    return ReceiptItem(
        description=description,
        price=price,
        unit_price=unit_price,
        quantity=quantity,
        taxable=taxable if isinstance(taxable, bool) else True,
        involved_participants=involvement_from_payload(raw),
    )


def _expense_type(value: Any) -> ExpenseType:
    try:
        return ExpenseType(int(to_quantity(value)))
    except ValueError:
        return ExpenseType.OTHER


def _optional_text(value: Any) -> Optional[str]:
    if is_blank(value):
        return None
    return str(value).strip()


def sanitize(
    raw: Any,
    *,
    participants: Optional[list[str]] = None,
    default_tax_rate: Optional[Any] = None,
    today: Optional[date] = None,
) -> ReceiptData:
    """
    Map a raw OCR payload to a canonical ReceiptData.

    Args:
        raw: Untyped payload. Anything that is not a mapping counts as empty.
        participants: Household roster; defaults to configuration
        default_tax_rate: Percentage used when no tax is found;
                          defaults to HOUSEHOLD_DEFAULT_TAX_RATE
        today: Date used when the payload has none

    Returns:
        A structurally complete ReceiptData. Never raises.
    """
    if not isinstance(raw, Mapping):
        logger.debug("payload_not_a_mapping", payload_type=type(raw).__name__)
        raw = {}

    household = None
    if participants is None or default_tax_rate is None:
        household = get_settings().household
    roster = participants if participants is not None else household.participant_list
    rate = to_rate(default_tax_rate) if default_tax_rate is not None else household.default_tax_rate

    raw_items = raw.get("items")
    if not isinstance(raw_items, list):
        raw_items = []
    items = [sanitize_item(entry) for entry in raw_items if isinstance(entry, Mapping)]
    if len(items) != len(raw_items):
        logger.debug("non_mapping_items_skipped", skipped=len(raw_items) - len(items))

    raw_text = _optional_text(raw.get("raw_text", raw.get("rawText")))
    recovered = recover_amounts(raw_text)

    if not is_blank(raw.get("subtotal")):
        receipt_subtotal = to_money(raw.get("subtotal"))
    elif "subtotal" in recovered:
        receipt_subtotal = recovered["subtotal"]
    else:
        receipt_subtotal = round_money(subtotal(items))

    if not is_blank(raw.get("tax")):
        tax = to_money(raw.get("tax"))
    elif "tax" in recovered:
        tax = recovered["tax"]
    else:
        tax = rate_tax(receipt_subtotal, rate)
        logger.debug("default_tax_applied", rate=str(rate), tax=str(tax))

    if not is_blank(raw.get("tip")):
        tip = to_money(raw.get("tip"))
    else:
        tip = recovered.get("tip", Decimal("0.00"))

    reported_total = to_money(raw.get("total"))
    if reported_total == 0:
        total = receipt_subtotal + tax + tip
        reported = None
    else:
        total = reported_total
        reported = reported_total

    involved = involvement_from_payload(raw)
    if involved is None:
        involved = frozenset(roster)

    vendor = raw.get("vendor")
    return ReceiptData(
        items=items,
        vendor=str(vendor).strip()[:MAX_TEXT_LENGTH] if vendor is not None else "",
        date=normalize_date(raw.get("date"), today=today),
        receipt_id=_optional_text(raw.get("receiptId", raw.get("receipt_id"))),
        subtotal=receipt_subtotal,
        tax=tax,
        tip=tip,
        total=total,
        reported_total=reported,
        involved_participants=involved,
        paid_by=_optional_text(raw.get("paidBy", raw.get("paid_by"))),
        expense_type=_expense_type(raw.get("expenseType", raw.get("expense_type"))),
        raw_text=raw_text,
    )


def blank_receipt(
    participants: Optional[list[str]] = None,
    today: Optional[date] = None,
) -> ReceiptData:
    """Empty receipt for manual entry, shared by the whole household."""
    roster = participants if participants is not None else get_settings().household.participant_list
    return ReceiptData(
        date=(today or date.today()).isoformat(),
        involved_participants=frozenset(roster),
    )
