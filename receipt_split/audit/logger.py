"""
Audit Logger

DESIGN DECISION: Every significant step of a receipt's life is logged.
This provides:
1. Traceability from OCR payload to exported rows
2. Debugging capability when a split looks wrong
3. A record of accepted totals mismatches

The audit logger:
- Is async so it sits naturally next to the external services
- Gracefully handles failures (a broken audit sheet never blocks an export)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from receipt_split.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from receipt_split.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog's stdlib output to stderr at the given level."""
    logging.basicConfig(format="%(message)s", level=level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Google Sheets audit tab (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("receipt_split.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_receipt_ingested(
        self,
        receipt_id: Optional[str],
        item_count: int,
        vendor: str,
        correlation_id: UUID,
    ) -> None:
        """Log a receipt coming out of the sanitizer."""
        event = AuditEventBuilder.receipt_ingested(
            receipt_id=receipt_id,
            item_count=item_count,
            vendor=vendor,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_totals_mismatch(
        self,
        receipt_id: Optional[str],
        computed_total: str,
        reported_total: str,
        delta: str,
        correlation_id: UUID,
    ) -> None:
        """Log a computed total that disagrees with the printed one."""
        event = AuditEventBuilder.totals_mismatch(
            receipt_id=receipt_id,
            computed_total=computed_total,
            reported_total=reported_total,
            delta=delta,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        receipt_id: Optional[str],
        field_errors: dict[str, str],
        correlation_id: UUID,
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            receipt_id=receipt_id,
            field_errors=field_errors,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_apportionment_failed(
        self,
        receipt_id: Optional[str],
        message: str,
        unassigned_items: list[int],
        correlation_id: UUID,
    ) -> None:
        """Log a split with nobody to divide by."""
        event = AuditEventBuilder.apportionment_failed(
            receipt_id=receipt_id,
            message=message,
            unassigned_items=unassigned_items,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_receipt_discarded(
        self,
        receipt_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log user discarding a receipt."""
        event = AuditEventBuilder.receipt_discarded(
            receipt_id=receipt_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_image_backed_up(
        self,
        file_id: str,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        """Log image backup."""
        event = AuditEventBuilder.image_backed_up(
            file_id=file_id,
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_receipt_exported(
        self,
        receipt_id: Optional[str],
        row_count: int,
        total: str,
        destination: str,
        correlation_id: UUID,
    ) -> None:
        """Log rows written to the shared sheet."""
        event = AuditEventBuilder.receipt_exported(
            receipt_id=receipt_id,
            row_count=row_count,
            total=total,
            destination=destination,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_export_failed(
        self,
        receipt_id: Optional[str],
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log export failure."""
        event = AuditEventBuilder.export_failed(
            receipt_id=receipt_id,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this when a receipt enters the system (upload or blank form).
    Pass it through all subsequent operations.
    """
    return uuid4()
