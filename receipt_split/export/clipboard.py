"""
Clipboard export text.

The shared spreadsheet imports receipts by pasting. The text is
tab-separated, one line per row, in the same column order as the sheet.
The backup file id is not part of the pasted text.
"""

from datetime import date
from typing import Optional

from receipt_split.models.receipt import ExportRowSet


def format_sheet_date(value: str, today: Optional[date] = None) -> str:
    """
    Short date used by the sheet.

    M/D for dates in the current year, YYYY/M/D otherwise.
    Text that is not an ISO date is returned unchanged.
    """
    if not value:
        return ""
    try:
        parsed = date.fromisoformat(value.strip())
    except ValueError:
        return value

    current_year = (today or date.today()).year
    if parsed.year == current_year:
        return f"{parsed.month}/{parsed.day}"
    return f"{parsed.year}/{parsed.month}/{parsed.day}"


def format_clipboard_text(row_set: ExportRowSet, today: Optional[date] = None) -> str:
    """Render the rows as tab-separated lines, ready to paste."""
    lines = []
    for row in row_set.rows:
        cells = row.to_cells(
            row_set.participants,
            date_text=format_sheet_date(row.date, today=today),
        )
        lines.append("\t".join(cells))
    return "\n".join(lines)
