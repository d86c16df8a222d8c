"""
Storage Services Package

Provides abstract interfaces and the Google Sheets implementations for
the shared expense sheet and the audit log.
"""

from receipt_split.services.storage.interface import (
    AuditStorageInterface,
    ExportError,
    ExportWriterInterface,
    SheetsConnectionError,
)
from receipt_split.services.storage.google_sheets import (
    FILE_ID_COLUMN,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExportWriter,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExportWriterInterface",
    # Exceptions
    "ExportError",
    "SheetsConnectionError",
    # Google Sheets implementation
    "FILE_ID_COLUMN",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExportWriter",
]
