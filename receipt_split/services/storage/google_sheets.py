"""
Google Sheets Export Implementation

DESIGN DECISION: The household already keeps its shared expenses in a
Google Sheet, so exported receipts are appended there directly:
1. Housemates see new rows without any extra tooling
2. Formulas in the sheet keep working on USER_ENTERED values
3. No database setup required

TRADEOFFS:
- No transactions (a receipt's rows are appended in one call)
- Rows are never read back by this package

The implementation follows the abstract interfaces, so the export target
can change without touching the receipt logic.
"""

from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from receipt_split.config import GoogleSheetsSettings, get_settings
from receipt_split.models.audit import AUDIT_SHEET_HEADER, AuditEvent
from receipt_split.models.receipt import ExportRowSet
from receipt_split.services.storage.interface import (
    AuditStorageInterface,
    ExportError,
    ExportWriterInterface,
    SheetsConnectionError,
)


logger = structlog.get_logger(__name__)

FILE_ID_COLUMN = "fileId"

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise SheetsConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise SheetsConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    @property
    def expenses_sheet_name(self) -> str:
        return self._settings.expenses_sheet_name

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise SheetsConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        header: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(header),
            )
            sheet.append_row(header)
        return sheet

    def get_expenses_sheet(self, header: list[str]) -> gspread.Worksheet:
        """Get or create the shared expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name,
            header,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_SHEET_HEADER,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsExportWriter(ExportWriterInterface):
    """
    Appends receipt rows to the shared expense sheet.

    Values are sent USER_ENTERED so the sheet parses dates and numbers
    the same way it does for pasted rows.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @property
    def destination(self) -> str:
        return self._client.expenses_sheet_name

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_rows(self, row_set: ExportRowSet) -> int:
        """Append one receipt's rows, with the backup file id as a trailing cell."""
        values = row_set.to_values(include_file_id=True)
        if not values:
            return 0
        try:
            sheet = self._client.get_expenses_sheet([*row_set.header, FILE_ID_COLUMN])
            sheet.append_rows(values, value_input_option="USER_ENTERED")
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"Failed to append rows: {e}")
        return len(values)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the receipt flow
            logger.warning(
                "audit_sheet_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False
