"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for everything that leaves
the process. This allows us to:
1. Swap Google Sheets for another spreadsheet or database later
2. Use in-memory fakes for testing
3. Keep the receipt logic decoupled from where rows end up

The core only builds payloads; these interfaces receive them.
"""

from abc import ABC, abstractmethod

from receipt_split.models.audit import AuditEvent
from receipt_split.models.receipt import ExportRowSet


class ExportError(Exception):
    """Base exception for spreadsheet export errors."""
    pass


class SheetsConnectionError(ExportError):
    """Failed to connect to the spreadsheet backend."""
    pass


class ExportWriterInterface(ABC):
    """
    Abstract interface for the shared expense spreadsheet.

    Implementations append rows; they never edit or delete existing ones.
    """

    @property
    def destination(self) -> str:
        """Where rows end up, for audit messages."""
        return type(self).__name__

    @abstractmethod
    async def append_rows(self, row_set: ExportRowSet) -> int:
        """
        Append the rows for one receipt.

        Args:
            row_set: Rows built by build_export_rows()

        Returns:
            Number of rows written

        Raises:
            ExportError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass
