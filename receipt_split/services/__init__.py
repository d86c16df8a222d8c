"""Services package."""

from receipt_split.services.backup import (
    BackupError,
    CloudinaryImageBackup,
    ImageBackupInterface,
    ImageTooLargeError,
    UnsupportedImageFormatError,
)
from receipt_split.services.storage import (
    FILE_ID_COLUMN,
    AuditStorageInterface,
    ExportError,
    ExportWriterInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExportWriter,
    SheetsConnectionError,
)

__all__ = [
    # Image backup
    "BackupError",
    "CloudinaryImageBackup",
    "ImageBackupInterface",
    "ImageTooLargeError",
    "UnsupportedImageFormatError",
    # Storage services
    "FILE_ID_COLUMN",
    "AuditStorageInterface",
    "ExportError",
    "ExportWriterInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExportWriter",
    "SheetsConnectionError",
]
