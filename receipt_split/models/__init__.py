"""Data models package."""

from receipt_split.models.audit import (
    AUDIT_SHEET_HEADER,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from receipt_split.models.receipt import (
    MONEY_TOLERANCE,
    Apportionment,
    ApportionmentError,
    ApportionmentMode,
    EditedField,
    ExpenseType,
    ExportGrouping,
    ExportResult,
    ExportRow,
    ExportRowSet,
    ReceiptData,
    ReceiptItem,
    TaxConfig,
    TaxMode,
    TotalsCheck,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Audit
    "AUDIT_SHEET_HEADER",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Receipt
    "MONEY_TOLERANCE",
    "Apportionment",
    "ApportionmentError",
    "ApportionmentMode",
    "EditedField",
    "ExpenseType",
    "ExportGrouping",
    "ExportResult",
    "ExportRow",
    "ExportRowSet",
    "ReceiptData",
    "ReceiptItem",
    "TaxConfig",
    "TaxMode",
    "TotalsCheck",
    "ValidationIssue",
    "ValidationResult",
]
