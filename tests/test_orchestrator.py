"""
Integration tests for the receipt flow, with fake external services.
"""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from receipt_split.audit import AuditLogger
from receipt_split.calculations import custom_rate_config
from receipt_split.models.audit import AuditEvent, AuditEventType
from receipt_split.models.receipt import ExportRowSet
from receipt_split.orchestrator import ReceiptFlow
from receipt_split.services.backup import BackupError, ImageBackupInterface
from receipt_split.services.storage import (
    AuditStorageInterface,
    ExportError,
    ExportWriterInterface,
)
from receipt_split.validation import ReceiptValidator


ROSTER = ["Alice", "Bob", "Carol"]
NOW = datetime(2024, 3, 15, 14, 25, 30, tzinfo=timezone.utc)

PAYLOAD = {
    "vendor": "Corner Store",
    "date": "2024-03-15",
    "receiptId": "r-1",
    "paidBy": "Alice",
    "items": [
        {"name": "Milk", "price": "10.00"},
        {"name": "Bread", "price": "20.00"},
    ],
    "tax": "3.90",
    "total": "34.00",
}


class FakeExportWriter(ExportWriterInterface):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.written: list[ExportRowSet] = []

    async def append_rows(self, row_set: ExportRowSet) -> int:
        if self.fail:
            raise ExportError("sheet is read-only")
        self.written.append(row_set)
        return len(row_set.rows)


class FakeImageBackup(ImageBackupInterface):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads: list[str] = []

    async def upload(self, image_bytes: bytes, filename: str) -> str:
        if self.fail:
            raise BackupError("upload refused")
        self.uploads.append(filename)
        return f"receipts/{filename.rsplit('.', 1)[0]}"


class FakeAuditStorage(AuditStorageInterface):
    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True


def make_flow(writer=None, backup=None):
    storage = FakeAuditStorage()
    flow = ReceiptFlow(
        export_writer=writer,
        image_backup=backup,
        validator=ReceiptValidator(tolerance=Decimal("0.01")),
        audit_logger=AuditLogger(storage),
        participants=ROSTER,
    )
    return flow, storage


def event_types(storage: FakeAuditStorage) -> list[AuditEventType]:
    return [event.event_type for event in storage.events]


def reviewed_receipt(flow: ReceiptFlow):
    receipt, _ = asyncio.run(flow.ingest(PAYLOAD))
    receipt, _ = flow.recalculate(receipt, custom_rate_config(13))
    return receipt


class TestIngest:
    """Tests for ReceiptFlow.ingest."""

    def test_ingest_flags_mismatch(self):
        """Test that a printed total disagreeing with the items is audited."""
        flow, storage = make_flow()
        receipt, check = asyncio.run(flow.ingest(PAYLOAD))
        assert receipt.vendor == "Corner Store"
        assert check.mismatch
        assert check.delta == Decimal("-0.10")
        assert event_types(storage) == [
            AuditEventType.RECEIPT_INGESTED,
            AuditEventType.TOTALS_MISMATCH,
        ]

    def test_events_share_correlation_id(self):
        """Test that one flow's events can be found together."""
        flow, storage = make_flow()
        correlation_id = UUID("12345678-1234-5678-1234-567812345678")
        asyncio.run(flow.ingest(PAYLOAD, correlation_id=correlation_id))
        events = [event for event in storage.events if event.correlation_id == correlation_id]
        assert len(events) == 2
        assert len(storage.events) == 2

    def test_new_receipt(self):
        """Test the blank manual-entry receipt."""
        flow, _ = make_flow()
        receipt = flow.new_receipt(today=date(2024, 3, 20))
        assert receipt.date == "2024-03-20"
        assert receipt.involved_participants == frozenset(ROSTER)


class TestRecalculateAndSplit:
    """Tests for the synchronous helpers."""

    def test_recalculate(self):
        """Test re-deriving totals after choosing a tax rate."""
        flow, _ = make_flow()
        receipt, _ = asyncio.run(flow.ingest(PAYLOAD))
        receipt, check = flow.recalculate(receipt, custom_rate_config(13))
        assert receipt.total == Decimal("33.90")
        assert receipt.reported_total == Decimal("34.00")
        assert check.mismatch

    def test_split(self):
        """Test the equal split."""
        flow, _ = make_flow()
        result = flow.split(reviewed_receipt(flow))
        assert result.shares == {name: Decimal("11.30") for name in ROSTER}

    def test_clipboard_text(self):
        """Test that the clipboard text is one tab-separated row."""
        flow, _ = make_flow()
        text = flow.clipboard_text(reviewed_receipt(flow), today=date(2024, 6, 1))
        assert text.startswith("3/15\tCorner Store\t9\t33.90\tAlice")


class TestExport:
    """Tests for ReceiptFlow.export."""

    def test_successful_export(self):
        """Test backup, rows and audit trail for a good receipt."""
        writer, backup = FakeExportWriter(), FakeImageBackup()
        flow, storage = make_flow(writer, backup)
        result = asyncio.run(flow.export(
            reviewed_receipt(flow),
            image_bytes=b"image",
            original_filename="photo.png",
            now=NOW,
        ))
        assert result.success
        assert result.rows_written == 1
        assert result.file_id == "receipts/receipt-20240315-142530"
        assert result.receipt.saved_at == NOW
        assert backup.uploads == ["receipt-20240315-142530.png"]
        assert writer.written[0].file_id == result.file_id
        assert AuditEventType.IMAGE_BACKED_UP in event_types(storage)
        assert event_types(storage)[-1] == AuditEventType.RECEIPT_EXPORTED

    def test_validation_failure_blocks_export(self):
        """Test that an invalid receipt is never written."""
        writer = FakeExportWriter()
        flow, storage = make_flow(writer)
        receipt = reviewed_receipt(flow).model_copy(update={"vendor": ""})
        result = asyncio.run(flow.export(receipt))
        assert not result.success
        assert "vendor" in result.validation.field_errors
        assert writer.written == []
        assert event_types(storage)[-1] == AuditEventType.VALIDATION_FAILED

    def test_nobody_sharing_blocks_export(self):
        """Test that an unsplittable receipt is reported, not exported."""
        writer = FakeExportWriter()
        flow, storage = make_flow(writer)
        receipt = reviewed_receipt(flow).model_copy(update={"involved_participants": frozenset()})
        result = asyncio.run(flow.export(receipt))
        assert not result.success
        assert result.apportionment.ok is False
        assert writer.written == []
        assert event_types(storage)[-1] == AuditEventType.APPORTIONMENT_FAILED

    def test_backup_failure_stops_before_rows(self):
        """Test that no row is written without its image."""
        writer = FakeExportWriter()
        flow, storage = make_flow(writer, FakeImageBackup(fail=True))
        result = asyncio.run(flow.export(reviewed_receipt(flow), image_bytes=b"image", now=NOW))
        assert not result.success
        assert "image_backup" in result.message
        assert writer.written == []
        assert event_types(storage)[-2:] == [
            AuditEventType.EXTERNAL_SERVICE_ERROR,
            AuditEventType.EXPORT_FAILED,
        ]

    def test_writer_failure_keeps_rows(self):
        """Test that built rows are returned when the sheet write fails."""
        flow, storage = make_flow(FakeExportWriter(fail=True))
        result = asyncio.run(flow.export(reviewed_receipt(flow), now=NOW))
        assert not result.success
        assert result.row_set is not None
        assert len(result.row_set.rows) == 1
        assert event_types(storage)[-1] == AuditEventType.EXPORT_FAILED

    def test_export_without_services(self):
        """Test clipboard-only use."""
        flow, storage = make_flow()
        result = asyncio.run(flow.export(reviewed_receipt(flow), now=NOW))
        assert result.success
        assert result.rows_written == 0
        assert result.file_id is None
        assert storage.events[-1].details["destination"] == "clipboard"

    def test_discard(self):
        """Test that discarding is audited as a user action."""
        flow, storage = make_flow()
        asyncio.run(flow.discard(reviewed_receipt(flow)))
        assert storage.events[-1].event_type == AuditEventType.RECEIPT_DISCARDED
        assert storage.events[-1].is_user_action
