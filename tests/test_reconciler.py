"""
Tests for the line-item reconciler and the editing operations built on it.
"""

import pytest
from decimal import Decimal

from receipt_split.calculations import (
    add_item,
    inconsistent_lines,
    line_is_consistent,
    reconcile_item,
    remove_item,
    toggle_taxable,
    update_item,
)
from receipt_split.models.receipt import EditedField, ReceiptData, ReceiptItem


def make_item(**kwargs) -> ReceiptItem:
    defaults = {"description": "Milk", "price": Decimal("2.50"), "unit_price": Decimal("2.50")}
    defaults.update(kwargs)
    return ReceiptItem(**defaults)


class TestReconcileItem:
    """Tests for reconcile_item."""

    def test_quantity_edit_recomputes_price(self):
        """Test that a new quantity multiplies the unit price."""
        item = make_item(quantity=Decimal("3"))
        result = reconcile_item(item, EditedField.QUANTITY)
        assert result.price == Decimal("7.50")
        assert result.unit_price == Decimal("2.50")

    def test_quantity_then_price_round_trip(self):
        """Test that editing quantity then price returns the original unit price."""
        item = reconcile_item(make_item(quantity=Decimal("3")), EditedField.QUANTITY)
        result = reconcile_item(item, EditedField.PRICE)
        assert result.unit_price == Decimal("2.50")

    def test_unit_price_edit_recomputes_price(self):
        """Test that a new unit price multiplies by quantity."""
        item = make_item(unit_price=Decimal("1.99"), quantity=Decimal("3"))
        result = reconcile_item(item, EditedField.UNIT_PRICE)
        assert result.price == Decimal("5.97")

    def test_price_edit_recomputes_unit_price(self):
        """Test that a new price divides by quantity and rounds."""
        item = make_item(price=Decimal("10.00"), quantity=Decimal("3"))
        result = reconcile_item(item, EditedField.PRICE)
        assert result.unit_price == Decimal("3.33")
        assert result.price == Decimal("10.00")

    def test_price_edit_without_unit_price_leaves_it_unset(self):
        """Test that editing price never invents a unit price."""
        item = make_item(price=Decimal("10.00"), unit_price=None, quantity=Decimal("2"))
        result = reconcile_item(item, EditedField.PRICE)
        assert result.unit_price is None
        assert result.price == Decimal("10.00")

    def test_quantity_edit_without_unit_price_derives_it(self):
        """Test that a quantity edit with no unit price keeps price and derives unit price."""
        item = make_item(price=Decimal("10.00"), unit_price=None, quantity=Decimal("4"))
        result = reconcile_item(item, EditedField.QUANTITY)
        assert result.price == Decimal("10.00")
        assert result.unit_price == Decimal("2.50")

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-2")])
    def test_non_positive_quantity_counts_as_one(self, quantity):
        """Test that a zero or negative quantity never divides by zero."""
        item = make_item(unit_price=Decimal("2.00"), quantity=quantity)
        assert reconcile_item(item, EditedField.UNIT_PRICE).price == Decimal("2.00")
        assert reconcile_item(item, EditedField.PRICE).unit_price == Decimal("2.50")

    def test_input_not_mutated(self):
        """Test that reconcile returns a new item."""
        item = make_item(quantity=Decimal("3"))
        reconcile_item(item, EditedField.QUANTITY)
        assert item.price == Decimal("2.50")

    def test_accepts_field_name_text(self):
        """Test that the edited field may be given by name."""
        item = make_item(quantity=Decimal("2"))
        assert reconcile_item(item, "quantity").price == Decimal("5.00")

    @pytest.mark.parametrize("field", list(EditedField))
    @pytest.mark.parametrize("item", [
        ReceiptItem(price=Decimal("10.00"), unit_price=Decimal("3.33"), quantity=Decimal("3")),
        ReceiptItem(price=Decimal("7.00"), unit_price=Decimal("2.50"), quantity=Decimal("3")),
        ReceiptItem(price=Decimal("1.00"), unit_price=Decimal("0.33"), quantity=Decimal("0")),
    ])
    def test_idempotent(self, item, field):
        """Test that reconciling twice changes nothing the second time."""
        once = reconcile_item(item, field)
        assert reconcile_item(once, field) == once

    @pytest.mark.parametrize("field", [EditedField.PRICE, EditedField.UNIT_PRICE])
    def test_idempotent_without_unit_price(self, field):
        """Test idempotence for a line whose unit price was never known."""
        item = ReceiptItem(price=Decimal("10.00"), unit_price=None, quantity=Decimal("3"))
        once = reconcile_item(item, field)
        assert reconcile_item(once, field) == once

    def test_quantity_edit_on_cheap_line(self):
        """Test that a small price change from a quantity edit is not swallowed."""
        item = make_item(price=Decimal("0.50"), unit_price=Decimal("0.05"), quantity=Decimal("11"))
        assert reconcile_item(item, EditedField.QUANTITY).price == Decimal("0.55")

    def test_quantity_edit_on_high_count_line(self):
        """Test that a quantity edit always recomputes price from unit price."""
        item = make_item(price=Decimal("10.00"), unit_price=Decimal("0.01"), quantity=Decimal("1100"))
        assert reconcile_item(item, EditedField.QUANTITY).price == Decimal("11.00")


class TestLineConsistency:
    """Tests for the unit price x quantity consistency check."""

    def test_consistent_line(self):
        """Test an exact line."""
        assert line_is_consistent(make_item(price=Decimal("7.50"), quantity=Decimal("3")))

    def test_no_unit_price_is_consistent(self):
        """Test that a line without unit price has nothing to disagree with."""
        assert line_is_consistent(make_item(unit_price=None))

    def test_rounded_unit_price_allowed_slack(self):
        """Test that half a cent per unit of rounding is tolerated."""
        item = make_item(price=Decimal("10.00"), unit_price=Decimal("0.83"), quantity=Decimal("12"))
        assert line_is_consistent(item)

    def test_inconsistent_lines_reports_indexes(self):
        """Test that only the disagreeing lines are reported."""
        items = [
            make_item(),
            make_item(price=Decimal("9.00"), quantity=Decimal("2")),
        ]
        assert inconsistent_lines(items) == [1]


class TestEditing:
    """Tests for receipt editing operations."""

    def make_receipt(self) -> ReceiptData:
        return ReceiptData(
            vendor="Corner Store",
            date="2024-03-15",
            items=[make_item(), make_item(description="Bread", price=Decimal("3.00"), unit_price=None)],
        )

    def test_update_quantity_normalizes_and_reconciles(self):
        """Test that a typed quantity drives the price."""
        receipt = update_item(self.make_receipt(), 0, "quantity", "3")
        assert receipt.items[0].quantity == Decimal("3")
        assert receipt.items[0].price == Decimal("7.50")

    def test_update_quantity_by_one_on_cheap_line(self):
        """Test that a one-unit change on a cheap line still moves the price."""
        receipt = ReceiptData(items=[
            make_item(price=Decimal("0.50"), unit_price=Decimal("0.05"), quantity=Decimal("10")),
        ])
        receipt = update_item(receipt, 0, "quantity", "11")
        assert receipt.items[0].price == Decimal("0.55")

    def test_update_unit_price_from_text(self):
        """Test that a typed unit price is cleaned before use."""
        receipt = update_item(self.make_receipt(), 0, "unit_price", "$3.00")
        assert receipt.items[0].price == Decimal("3.00")

    def test_update_description_strips(self):
        """Test that descriptions are stored trimmed."""
        receipt = update_item(self.make_receipt(), 1, "description", "  Rye bread ")
        assert receipt.items[1].description == "Rye bread"

    def test_update_unknown_field_rejected(self):
        """Test that only item fields can be edited."""
        with pytest.raises(ValueError):
            update_item(self.make_receipt(), 0, "vendor", "x")

    def test_update_bad_index_rejected(self):
        """Test that an out of range index raises."""
        with pytest.raises(IndexError):
            update_item(self.make_receipt(), 5, "price", "1")

    def test_original_snapshot_unchanged(self):
        """Test that edits produce a new receipt."""
        receipt = self.make_receipt()
        update_item(receipt, 0, "price", "9.99")
        assert receipt.items[0].price == Decimal("2.50")

    def test_add_item_is_blank_and_unassigned(self):
        """Test that a new item is blank and follows receipt involvement."""
        receipt = add_item(self.make_receipt())
        new = receipt.items[-1]
        assert len(receipt.items) == 3
        assert new.description == ""
        assert new.price == Decimal("0.00")
        assert new.quantity == Decimal("1")
        assert new.involved_participants is None

    def test_remove_item(self):
        """Test that an item can be removed."""
        receipt = remove_item(self.make_receipt(), 0)
        assert [item.description for item in receipt.items] == ["Bread"]

    def test_toggle_taxable(self):
        """Test that taxable flips."""
        receipt = toggle_taxable(self.make_receipt(), 0)
        assert receipt.items[0].taxable is False
