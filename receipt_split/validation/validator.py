"""
Two-Stage Receipt Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - REQUIRED FIELDS (errors, block export):
- Vendor present
- Date present and a real calendar date
- At least one item
- Every item has a description, a positive price and a positive quantity

STAGE 2 - CONSISTENCY CHECKS (warnings, never block export):
- Computed total vs the total printed on the receipt
- Line items whose price disagrees with unit price x quantity
- Dates in the future
- Items nobody is involved in

IMPORTANT: Validation NEVER silently fixes issues.
It reports them, keyed by field, so a form can annotate every
offending field at once.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from receipt_split.calculations.apportionment import (
    resolve_item_involvement,
    uses_item_level_involvement,
)
from receipt_split.calculations.reconciler import inconsistent_lines
from receipt_split.calculations.totals import check_receipt
from receipt_split.config import get_settings
from receipt_split.ingestion.sanitizer import DEFAULT_DESCRIPTION
from receipt_split.models.receipt import (
    ReceiptData,
    ValidationIssue,
    ValidationResult,
)


def item_field(index: int, name: str) -> str:
    """Field key used for one item's issues (e.g. 'item-0-price')."""
    return f"item-{index}-{name}"


class ReceiptValidator:
    """
    Validates a receipt before it is exported.

    Stage 1: Required fields (errors)
    Stage 2: Consistency checks (warnings)
    """

    def __init__(self, tolerance: Optional[Decimal] = None):
        """
        Initialize validator.

        Args:
            tolerance: Allowed totals difference.
                       Defaults to HOUSEHOLD_MONEY_TOLERANCE.
        """
        self._tolerance = tolerance

    @property
    def tolerance(self) -> Decimal:
        if self._tolerance is None:
            self._tolerance = get_settings().household.money_tolerance
        return self._tolerance

    def _validate_required(self, receipt: ReceiptData) -> list[ValidationIssue]:
        """
        Stage 1: Required fields.

        Returns: list of error-level issues
        """
        issues = []

        if not receipt.vendor.strip():
            issues.append(ValidationIssue(
                field="vendor",
                issue_type="missing",
                message="Vendor is required",
                severity="error",
                suggested_fix="Enter the store name printed on the receipt",
            ))

        if not receipt.date.strip():
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
                suggested_fix="Enter the purchase date",
            ))
        elif _parse_iso_date(receipt.date) is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_value",
                message=f"Date ({receipt.date}) is not a valid date",
                severity="error",
                suggested_fix="Use the YYYY-MM-DD format",
            ))

        if not receipt.items:
            issues.append(ValidationIssue(
                field="items",
                issue_type="missing",
                message="At least one item is required",
                severity="error",
                suggested_fix="Add the items from the receipt",
            ))

        for index, item in enumerate(receipt.items):
            if not item.description.strip():
                issues.append(ValidationIssue(
                    field=item_field(index, "description"),
                    issue_type="missing",
                    message="Description is required",
                    severity="error",
                ))
            if item.price <= 0:
                issues.append(ValidationIssue(
                    field=item_field(index, "price"),
                    issue_type="invalid_value",
                    message="Price must be greater than zero",
                    severity="error",
                ))
            if item.quantity <= 0:
                issues.append(ValidationIssue(
                    field=item_field(index, "quantity"),
                    issue_type="invalid_value",
                    message="Quantity must be greater than zero",
                    severity="error",
                ))

        return issues

    def _validate_consistency(self, receipt: ReceiptData) -> list[ValidationIssue]:
        """
        Stage 2: Consistency checks.

        Returns: list of warning-level issues
        """
        issues = []

        check = check_receipt(receipt, tolerance=self.tolerance)
        if check.mismatch:
            issues.append(ValidationIssue(
                field="total",
                issue_type="inconsistent",
                message=(
                    f"Computed total ({check.total}) differs from the receipt "
                    f"total ({check.reported_total}) by {check.delta}"
                ),
                severity="warning",
                suggested_fix="Check for missing items, discounts or a wrong tax amount",
            ))

        for index in inconsistent_lines(receipt.items):
            issues.append(ValidationIssue(
                field=item_field(index, "price"),
                issue_type="inconsistent",
                message="Price does not match unit price x quantity",
                severity="warning",
            ))

        for index, item in enumerate(receipt.items):
            if item.description == DEFAULT_DESCRIPTION:
                issues.append(ValidationIssue(
                    field=item_field(index, "description"),
                    issue_type="placeholder",
                    message="Item name could not be read from the receipt",
                    severity="warning",
                    suggested_fix="Type the item name",
                ))

        parsed = _parse_iso_date(receipt.date)
        if parsed and parsed > date.today():
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({receipt.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if uses_item_level_involvement(receipt):
            for index, item in enumerate(receipt.items):
                if not resolve_item_involvement(item, receipt):
                    issues.append(ValidationIssue(
                        field=item_field(index, "involvement"),
                        issue_type="unassigned",
                        message="Nobody is sharing this item",
                        severity="warning",
                        suggested_fix="Pick at least one housemate",
                    ))
        elif not receipt.involved_participants:
            issues.append(ValidationIssue(
                field="involvement",
                issue_type="unassigned",
                message="Nobody is sharing this receipt",
                severity="warning",
                suggested_fix="Pick at least one housemate",
            ))

        return issues

    def validate(self, receipt: ReceiptData) -> ValidationResult:
        """
        Run both validation stages.

        Args:
            receipt: The receipt about to be exported

        Returns:
            ValidationResult with all issues found
        """
        issues = self._validate_required(receipt)
        issues.extend(self._validate_consistency(receipt))

        warnings = [issue.message for issue in issues if issue.severity == "warning"]
        is_valid = not any(issue.severity == "error" for issue in issues)

        return ValidationResult(
            receipt_id=receipt.receipt_id,
            is_valid=is_valid,
            issues=issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to the export button.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed! Ready to export."

        lines = []

        if not result.is_valid:
            lines.append("❌ Please fix the following before exporting:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.field}: {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.is_valid:
            lines.append("")
            lines.append("You can still export, but please review carefully.")

        return "\n".join(lines)


def _parse_iso_date(text: str) -> Optional[date]:
    try:
        return date.fromisoformat(text.strip())
    except ValueError:
        return None
