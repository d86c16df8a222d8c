"""
Main Orchestrator for Receipt Split

This module ties the pure calculation layer to the external services and
defines the end-to-end receipt flow:

    OCR payload -> sanitize -> (edit, recalculate)* -> validate ->
    split -> back up image -> build rows -> append to sheet

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is exported until validation passes
- A receipt nobody shares is never exported
- A totals mismatch is reported but never blocks an export
- Every step is audited

Edits themselves never go through here. The caller keeps the current
receipt and applies the functions in receipt_split.calculations to it,
calling recalculate() after each change.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from receipt_split.audit import AuditLogger, configure_logging, create_correlation_id
from receipt_split.calculations import (
    check_receipt,
    compute_shares,
    recalculate_receipt,
    resolve_roster,
)
from receipt_split.config import get_settings
from receipt_split.export import (
    build_export_rows,
    format_clipboard_text,
    generate_receipt_filename,
)
from receipt_split.ingestion import blank_receipt, sanitize
from receipt_split.models.receipt import (
    Apportionment,
    ExportGrouping,
    ExportResult,
    ExportRowSet,
    ReceiptData,
    TaxConfig,
    TotalsCheck,
    ValidationResult,
)
from receipt_split.services.backup import (
    BackupError,
    CloudinaryImageBackup,
    ImageBackupInterface,
)
from receipt_split.services.storage import (
    ExportError,
    ExportWriterInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExportWriter,
)
from receipt_split.validation import ReceiptValidator


logger = structlog.get_logger(__name__)


class ReceiptFlow:
    """
    Orchestrates one receipt from OCR payload to spreadsheet rows.

    Flow:
    1. Ingest    -> sanitize the OCR payload, flag a totals mismatch
    2. Edit      -> caller applies calculation functions, then recalculate()
    3. Validate  -> required fields (errors) and consistency (warnings)
    4. Split     -> receipt-level or item-level apportionment
    5. Back up   -> store the receipt image, keep its file id
    6. Export    -> build rows and append them to the shared sheet

    Services are optional. Without an export writer the rows are built
    but not written (clipboard-only use); without an image backup no
    file id is recorded.
    """

    def __init__(
        self,
        export_writer: Optional[ExportWriterInterface] = None,
        image_backup: Optional[ImageBackupInterface] = None,
        validator: Optional[ReceiptValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        participants: Optional[list[str]] = None,
    ):
        self._export_writer = export_writer
        self._image_backup = image_backup
        self._validator = validator or ReceiptValidator()
        self._audit_logger = audit_logger
        self._participants = participants

    @property
    def participants(self) -> list[str]:
        return resolve_roster(self._participants)

    async def ingest(
        self,
        raw: Any,
        correlation_id: Optional[UUID] = None,
        today: Optional[date] = None,
    ) -> tuple[ReceiptData, TotalsCheck]:
        """
        Turn an OCR payload into a canonical receipt.

        Returns:
            (receipt, totals_check). A mismatch in totals_check is a
            warning for the user, never an error.
        """
        correlation_id = correlation_id or create_correlation_id()

        receipt = sanitize(raw, participants=self.participants, today=today)
        check = check_receipt(receipt)

        if self._audit_logger:
            await self._audit_logger.log_receipt_ingested(
                receipt_id=receipt.receipt_id,
                item_count=len(receipt.items),
                vendor=receipt.vendor,
                correlation_id=correlation_id,
            )
            if check.mismatch:
                await self._audit_logger.log_totals_mismatch(
                    receipt_id=receipt.receipt_id,
                    computed_total=str(check.total),
                    reported_total=str(check.reported_total),
                    delta=str(check.delta),
                    correlation_id=correlation_id,
                )

        return receipt, check

    def new_receipt(self, today: Optional[date] = None) -> ReceiptData:
        """Blank receipt for manual entry."""
        return blank_receipt(self.participants, today=today)

    def recalculate(
        self,
        receipt: ReceiptData,
        tax_config: Optional[TaxConfig] = None,
    ) -> tuple[ReceiptData, TotalsCheck]:
        """Re-derive totals after an edit and re-check the printed total."""
        receipt = recalculate_receipt(receipt, tax_config)
        return receipt, check_receipt(receipt)

    def split(self, receipt: ReceiptData) -> Apportionment:
        """Each housemate's share of the receipt."""
        return compute_shares(receipt, self.participants)

    def clipboard_text(
        self,
        receipt: ReceiptData,
        grouping: ExportGrouping = ExportGrouping.AUTO,
        today: Optional[date] = None,
    ) -> str:
        """
        Tab-separated rows for pasting into the shared sheet.

        Raises:
            UnapportionedReceiptError: If nobody is sharing the receipt
        """
        row_set = build_export_rows(receipt, self.participants, grouping)
        return format_clipboard_text(row_set, today=today)

    async def export(
        self,
        receipt: ReceiptData,
        image_bytes: Optional[bytes] = None,
        original_filename: Optional[str] = None,
        grouping: ExportGrouping = ExportGrouping.AUTO,
        correlation_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> ExportResult:
        """
        Validate, split, back up and export a receipt.

        The image is backed up before any row is written, so every
        exported row can point at its image. A failure at any step stops
        the export and is reported in the result rather than raised.

        Returns:
            ExportResult; on success the receipt carries file_id and saved_at
        """
        correlation_id = correlation_id or create_correlation_id()
        now = now or datetime.now(timezone.utc)

        # Step 1: Validate
        validation = self._validator.validate(receipt)
        if not validation.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    receipt_id=receipt.receipt_id,
                    field_errors=validation.field_errors,
                    correlation_id=correlation_id,
                )
            return ExportResult(
                success=False,
                receipt=receipt,
                validation=validation,
                message=self._validator.get_user_friendly_summary(validation),
            )

        # Step 2: Split
        apportionment = self.split(receipt)
        if not apportionment.ok:
            if self._audit_logger:
                await self._audit_logger.log_apportionment_failed(
                    receipt_id=receipt.receipt_id,
                    message=apportionment.message or "",
                    unassigned_items=apportionment.unassigned_items,
                    correlation_id=correlation_id,
                )
            return ExportResult(
                success=False,
                receipt=receipt,
                validation=validation,
                apportionment=apportionment,
                message=apportionment.message or "Receipt could not be split",
            )

        # Step 3: Back up the image
        if image_bytes and self._image_backup:
            filename = generate_receipt_filename(original_filename, image_bytes, now=now)
            try:
                file_id = await self._image_backup.upload(image_bytes, filename)
            except BackupError as e:
                return await self._service_failure(
                    "image_backup", e, receipt, validation, apportionment, None, correlation_id
                )
            receipt = receipt.model_copy(update={"file_id": file_id})
            if self._audit_logger:
                await self._audit_logger.log_image_backed_up(
                    file_id=file_id,
                    filename=filename,
                    file_size=len(image_bytes),
                    correlation_id=correlation_id,
                )

        # Step 4: Build rows
        row_set = build_export_rows(receipt, self.participants, grouping)

        # Step 5: Write rows
        rows_written = 0
        if self._export_writer:
            try:
                rows_written = await self._export_writer.append_rows(row_set)
            except ExportError as e:
                return await self._service_failure(
                    "google_sheets", e, receipt, validation, apportionment, row_set, correlation_id
                )

        receipt = receipt.model_copy(update={"saved_at": now})
        if self._audit_logger:
            await self._audit_logger.log_receipt_exported(
                receipt_id=receipt.receipt_id,
                row_count=len(row_set.rows),
                total=str(receipt.total),
                destination=self._export_writer.destination if self._export_writer else "clipboard",
                correlation_id=correlation_id,
            )

        return ExportResult(
            success=True,
            receipt=receipt,
            validation=validation,
            apportionment=apportionment,
            row_set=row_set,
            file_id=receipt.file_id,
            rows_written=rows_written,
            message=f"Exported {len(row_set.rows)} row(s)",
        )

    async def _service_failure(
        self,
        service: str,
        error: Exception,
        receipt: ReceiptData,
        validation: ValidationResult,
        apportionment: Apportionment,
        row_set: Optional[ExportRowSet],
        correlation_id: UUID,
    ) -> ExportResult:
        logger.warning("export_step_failed", service=service, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_external_service_error(
                service=service,
                error_message=str(error),
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_export_failed(
                receipt_id=receipt.receipt_id,
                reason=str(error),
                correlation_id=correlation_id,
            )
        return ExportResult(
            success=False,
            receipt=receipt,
            validation=validation,
            apportionment=apportionment,
            row_set=row_set,
            file_id=receipt.file_id,
            message=f"{service} failed: {error}",
        )

    async def discard(
        self,
        receipt: ReceiptData,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Record that the user cancelled this receipt."""
        correlation_id = correlation_id or create_correlation_id()
        if self._audit_logger:
            await self._audit_logger.log_receipt_discarded(
                receipt_id=receipt.receipt_id,
                correlation_id=correlation_id,
            )


def create_app_components(
    use_storage: bool = True,
    use_backup: bool = True,
) -> tuple[ReceiptFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets export and audit.
                    Set to False for clipboard-only use.
        use_backup: Whether to initialize Cloudinary image backup.

    Returns:
        (receipt_flow, sheets_client)
    """
    configure_logging(get_settings().app.log_level)

    sheets_client = None
    export_writer = None
    image_backup = None
    audit_logger = AuditLogger()  # Local-only logging until storage is up

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            export_writer = GoogleSheetsExportWriter(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except ValidationError as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            export_writer = None

    if use_backup:
        try:
            image_backup = CloudinaryImageBackup()
        except ValidationError as e:
            logger.warning("image_backup_not_configured", error=str(e))

    flow = ReceiptFlow(
        export_writer=export_writer,
        image_backup=image_backup,
        audit_logger=audit_logger,
    )
    return flow, sheets_client
