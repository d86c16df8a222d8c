"""Export package - spreadsheet rows, clipboard text and backup filenames."""

from receipt_split.export.clipboard import format_clipboard_text, format_sheet_date
from receipt_split.export.filenames import generate_receipt_filename, sniff_extension
from receipt_split.export.rows import (
    UNKNOWN_VENDOR,
    UnapportionedReceiptError,
    build_export_rows,
)

__all__ = [
    "UNKNOWN_VENDOR",
    "UnapportionedReceiptError",
    "build_export_rows",
    "format_clipboard_text",
    "format_sheet_date",
    "generate_receipt_filename",
    "sniff_extension",
]
