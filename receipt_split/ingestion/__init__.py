"""Ingestion package - raw OCR payloads into canonical receipts."""

from receipt_split.ingestion.involvement import (
    from_mapping,
    from_names,
    involvement_from_payload,
    parse_involvement,
    to_mapping,
)
from receipt_split.ingestion.sanitizer import (
    blank_receipt,
    normalize_date,
    recover_amounts,
    sanitize,
    sanitize_item,
)

__all__ = [
    "blank_receipt",
    "from_mapping",
    "from_names",
    "involvement_from_payload",
    "normalize_date",
    "parse_involvement",
    "recover_amounts",
    "sanitize",
    "sanitize_item",
    "to_mapping",
]
