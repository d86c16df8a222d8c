"""
Tests for Receipt Split models

Test strategy:
1. Unit tests for individual components (models, calculations, validators)
2. Integration tests for flows (with fake external services)
3. No real API calls in tests
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from receipt_split.models.audit import (
    AUDIT_SHEET_HEADER,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from receipt_split.models.receipt import (
    Apportionment,
    ApportionmentMode,
    ExpenseType,
    ReceiptData,
    ReceiptItem,
    TaxConfig,
    TaxMode,
    ValidationIssue,
    ValidationResult,
)


class TestReceiptModels:
    """Tests for receipt snapshot models."""

    def test_item_defaults(self):
        """Test ReceiptItem defaults."""
        item = ReceiptItem()
        assert item.description == "Unknown Item"
        assert item.quantity == Decimal("1")
        assert item.unit_price is None
        assert item.taxable is True
        assert item.involved_participants is None

    def test_snapshots_are_frozen(self):
        """Test that receipts cannot be edited in place."""
        receipt = ReceiptData(vendor="Store")
        with pytest.raises(ValidationError):
            receipt.vendor = "Other"

    def test_involvement_accepts_lists(self):
        """Test that involvement is stored as a set of names."""
        receipt = ReceiptData(involved_participants=["Alice", " Bob ", "", "Alice"])
        assert receipt.involved_participants == frozenset({"Alice", "Bob"})

    def test_camel_case_aliases(self):
        """Test that payload-style keys are accepted and produced."""
        receipt = ReceiptData(paidBy="Alice", receiptId="r-1", expenseType=1)
        assert receipt.paid_by == "Alice"
        assert receipt.expense_type == ExpenseType.FOOD
        dumped = receipt.model_dump(by_alias=True)
        assert dumped["paidBy"] == "Alice"
        assert "involvedParticipants" in dumped

    def test_vendor_length_limit(self):
        """Test that overlong vendors are rejected at construction."""
        with pytest.raises(ValidationError):
            ReceiptData(vendor="x" * 201)

    def test_effective_quantity(self):
        """Test that a non-positive quantity counts as one."""
        assert ReceiptItem(quantity=Decimal("0")).effective_quantity == Decimal("1")
        assert ReceiptItem(quantity=Decimal("2")).effective_quantity == Decimal("2")


class TestTaxConfig:
    """Tests for TaxConfig normalization."""

    def test_rate_text_normalized(self):
        """Test that a typed rate is cleaned."""
        config = TaxConfig(mode=TaxMode.CUSTOM_RATE, rate="13%")
        assert config.rate == Decimal("13")

    def test_amount_rounded(self):
        """Test that a direct amount is rounded to cents."""
        config = TaxConfig(mode=TaxMode.DIRECT_AMOUNT, amount="$4.205")
        assert config.amount == Decimal("4.21")


class TestResultModels:
    """Tests for calculation and validation results."""

    def test_apportionment_conservation(self):
        """Test the conservation property."""
        result = Apportionment(
            ok=True,
            mode=ApportionmentMode.RECEIPT,
            total=Decimal("10.00"),
            residual=Decimal("0.01"),
            apportioned_units=3,
        )
        assert result.is_conserved
        broken = result.model_copy(update={"residual": Decimal("0.05")})
        assert not broken.is_conserved

    def test_validation_result_properties(self):
        """Test error helpers on ValidationResult."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(field="vendor", issue_type="missing", message="Vendor is required", severity="error"),
                ValidationIssue(field="total", issue_type="inconsistent", message="Off", severity="warning"),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1
        assert result.field_errors == {"vendor": "Vendor is required"}

    def test_issue_severity_pattern(self):
        """Test that unknown severities are rejected."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestAuditModels:
    """Tests for audit event models."""

    def test_builder_receipt_ingested(self):
        """Test the ingestion event."""
        correlation_id = uuid4()
        event = AuditEventBuilder.receipt_ingested("r-1", 3, "Corner Store", correlation_id)
        assert event.event_type == AuditEventType.RECEIPT_INGESTED
        assert event.entity_id == "r-1"
        assert event.correlation_id == correlation_id
        assert event.details["item_count"] == 3

    def test_builder_totals_mismatch_is_warning(self):
        """Test that a mismatch is logged as a warning."""
        event = AuditEventBuilder.totals_mismatch(None, "16.95", "17.00", "-0.05", uuid4())
        assert event.severity == AuditSeverity.WARNING
        assert event.details["delta"] == "-0.05"

    def test_builder_apportionment_failed(self):
        """Test the apportionment failure event."""
        event = AuditEventBuilder.apportionment_failed("r-1", "Nobody", [0, 2], uuid4())
        assert event.error_code == "apportionment_underflow"
        assert event.details["unassigned_items"] == [0, 2]

    def test_to_sheets_row(self):
        """Test the audit sheet row layout."""
        event = AuditEventBuilder.receipt_exported("r-1", 2, "33.90", "Sheet1", uuid4())
        row = event.to_sheets_row()
        assert len(row) == len(AUDIT_SHEET_HEADER)
        assert row[2] == "receipt_exported"
        assert row[-1] == "True"

    def test_to_log_dict(self):
        """Test structured log output."""
        event = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="boom")
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "system_error"
        assert log_dict["correlation_id"] is None
