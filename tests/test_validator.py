"""
Tests for two-stage receipt validation.
"""

from decimal import Decimal

from receipt_split.models.receipt import ReceiptData, ReceiptItem
from receipt_split.validation import ReceiptValidator, item_field


def make_receipt(**kwargs) -> ReceiptData:
    defaults = {
        "vendor": "Corner Store",
        "date": "2024-03-15",
        "items": [ReceiptItem(description="Milk", price=Decimal("10.00"))],
        "subtotal": Decimal("10.00"),
        "total": Decimal("10.00"),
        "involved_participants": ["Alice", "Bob"],
    }
    defaults.update(kwargs)
    return ReceiptData(**defaults)


def validator() -> ReceiptValidator:
    return ReceiptValidator(tolerance=Decimal("0.01"))


class TestRequiredFields:
    """Tests for stage 1 (errors)."""

    def test_valid_receipt(self):
        """Test that a complete receipt passes without warnings."""
        result = validator().validate(make_receipt())
        assert result.is_valid
        assert result.issues == []
        assert "All checks passed" in validator().get_user_friendly_summary(result)

    def test_missing_vendor_and_date(self):
        """Test that vendor and date are required."""
        result = validator().validate(make_receipt(vendor="", date=""))
        assert not result.is_valid
        assert set(result.field_errors) == {"vendor", "date"}

    def test_invalid_date(self):
        """Test that a date that never parsed is an error."""
        result = validator().validate(make_receipt(date="sometime"))
        assert result.field_errors["date"] == "Date (sometime) is not a valid date"

    def test_no_items(self):
        """Test that at least one item is required."""
        result = validator().validate(make_receipt(items=[]))
        assert "items" in result.field_errors

    def test_all_item_errors_reported_at_once(self):
        """Test that every offending item field is keyed by index."""
        items = [
            ReceiptItem(description="Milk", price=Decimal("10.00")),
            ReceiptItem(description="", price=Decimal("0"), quantity=Decimal("0")),
        ]
        result = validator().validate(make_receipt(items=items))
        assert result.error_count == 3
        assert set(result.field_errors) == {
            item_field(1, "description"),
            item_field(1, "price"),
            item_field(1, "quantity"),
        }

    def test_summary_lists_errors(self):
        """Test the user-facing summary for a blocked export."""
        result = validator().validate(make_receipt(vendor=""))
        summary = validator().get_user_friendly_summary(result)
        assert "fix the following" in summary
        assert "vendor: Vendor is required" in summary


class TestConsistencyWarnings:
    """Tests for stage 2 (warnings that never block)."""

    def test_totals_mismatch_is_warning(self):
        """Test that a mismatch warns but the receipt stays valid."""
        result = validator().validate(make_receipt(reported_total=Decimal("12.00")))
        assert result.is_valid
        assert any(issue.field == "total" for issue in result.issues)
        assert "review carefully" in validator().get_user_friendly_summary(result)

    def test_inconsistent_line(self):
        """Test that a price disagreeing with unit price x quantity warns."""
        items = [ReceiptItem(description="Eggs", price=Decimal("10.00"), unit_price=Decimal("2.00"), quantity=Decimal("3"))]
        result = validator().validate(make_receipt(items=items))
        assert result.is_valid
        assert [issue.field for issue in result.issues] == [item_field(0, "price")]

    def test_placeholder_description(self):
        """Test that the OCR placeholder name is flagged."""
        items = [ReceiptItem(description="Unknown Item", price=Decimal("10.00"))]
        result = validator().validate(make_receipt(items=items))
        assert result.is_valid
        assert result.issues[0].issue_type == "placeholder"

    def test_future_date(self):
        """Test that dates in the future warn."""
        result = validator().validate(make_receipt(date="2999-01-01"))
        assert result.is_valid
        assert result.issues[0].issue_type == "future_date"

    def test_nobody_sharing_receipt(self):
        """Test that an empty receipt-level set warns."""
        result = validator().validate(make_receipt(involved_participants=[]))
        assert result.is_valid
        assert result.issues[0].field == "involvement"

    def test_item_nobody_shares(self):
        """Test that an item with an empty set is flagged by index."""
        items = [
            ReceiptItem(description="Milk", price=Decimal("10.00")),
            ReceiptItem(description="Beer", price=Decimal("5.00"), involved_participants=[]),
        ]
        result = validator().validate(make_receipt(items=items))
        assert [issue.field for issue in result.issues] == [item_field(1, "involvement")]

    def test_tolerance_from_configuration(self, monkeypatch):
        """Test that the tolerance defaults to the household setting."""
        monkeypatch.setenv("HOUSEHOLD_MONEY_TOLERANCE", "0.50")
        result = ReceiptValidator().validate(make_receipt(reported_total=Decimal("10.40")))
        assert result.issues == []
