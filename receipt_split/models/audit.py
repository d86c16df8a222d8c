"""
Audit Models for Receipt Split

Every receipt that moves through ingestion, review and export leaves a
trail of events. This provides:
1. Traceability from an OCR payload to the rows in the shared sheet
2. Debugging information when a split looks wrong
3. A record of totals the household accepted despite a mismatch

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the receipt flow has its own event type.
    """
    # Ingestion
    RECEIPT_INGESTED = "receipt_ingested"
    TOTALS_MISMATCH = "totals_mismatch"

    # Review
    VALIDATION_FAILED = "validation_failed"
    APPORTIONMENT_FAILED = "apportionment_failed"
    RECEIPT_DISCARDED = "receipt_discarded"

    # Export
    IMAGE_BACKED_UP = "image_backed_up"
    RECEIPT_EXPORTED = "receipt_exported"
    EXPORT_FAILED = "export_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'receipt', 'image')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one receipt from upload to export)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


AUDIT_SHEET_HEADER = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details",
    "error_message",
    "is_user_action",
]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.receipt_ingested(receipt_id, 3, None, correlation_id)
        event = AuditEventBuilder.receipt_exported(receipt_id, 2, "Sheet1", correlation_id)
    """

    @staticmethod
    def receipt_ingested(
        receipt_id: Optional[str],
        item_count: int,
        vendor: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_INGESTED,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description=f"Receipt ingested with {item_count} items",
            details={
                "vendor": vendor,
                "item_count": item_count,
            },
        )

    @staticmethod
    def totals_mismatch(
        receipt_id: Optional[str],
        computed_total: str,
        reported_total: str,
        delta: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TOTALS_MISMATCH,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description=f"Computed total {computed_total} differs from receipt total {reported_total}",
            details={
                "computed_total": computed_total,
                "reported_total": reported_total,
                "delta": delta,
            },
        )

    @staticmethod
    def validation_failed(
        receipt_id: Optional[str],
        field_errors: dict[str, str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(field_errors)} errors",
            details={
                "field_errors": field_errors,
            },
        )

    @staticmethod
    def apportionment_failed(
        receipt_id: Optional[str],
        message: str,
        unassigned_items: list[int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.APPORTIONMENT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description=f"Receipt could not be split: {message}",
            error_code="apportionment_underflow",
            details={
                "unassigned_items": unassigned_items,
            },
        )

    @staticmethod
    def receipt_discarded(
        receipt_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_DISCARDED,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description="User discarded the receipt",
            is_user_action=True,
        )

    @staticmethod
    def image_backed_up(
        file_id: str,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_BACKED_UP,
            entity_type="image",
            entity_id=file_id,
            correlation_id=correlation_id,
            description=f"Receipt image backed up: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
        )

    @staticmethod
    def receipt_exported(
        receipt_id: Optional[str],
        row_count: int,
        total: str,
        destination: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_EXPORTED,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description=f"Receipt exported: {row_count} rows, total {total}",
            details={
                "row_count": row_count,
                "total": total,
                "destination": destination,
            },
            is_user_action=True,
        )

    @staticmethod
    def export_failed(
        receipt_id: Optional[str],
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description="Receipt export failed",
            error_message=reason,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
