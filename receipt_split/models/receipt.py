"""
Core Data Models for Receipt Split

These models define the schemas for all data flowing through the system.
They are designed to:
1. Keep money in Decimal end to end
2. Be immutable snapshots (every edit produces a new value)
3. Serialize with camelCase keys for the front end and local history
4. Carry structured results instead of exceptions

DESIGN DECISION: Involvement is always a set of participant names.
The 0/1 mapping and the legacy sharedWith list are translated once,
at the ingestion boundary (see receipt_split.ingestion.involvement).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


MONEY_TOLERANCE = Decimal("0.01")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseType(IntEnum):
    """
    Expense categories understood by the shared spreadsheet.

    The integer value is the code written to the expenseTypeCode column.
    """
    FOOD = 1
    DRINKS = 2
    CLOTHING = 3
    HOUSEHOLD = 4
    ELECTRONICS = 5
    ENTERTAINMENT = 6
    TRANSPORTATION = 7
    MEDICINE = 8
    OTHER = 9


class EditedField(str, Enum):
    """The line-item field the user just edited (the driver of a reconcile)."""
    PRICE = "price"
    UNIT_PRICE = "unit_price"
    QUANTITY = "quantity"


class TaxMode(str, Enum):
    """How the receipt tax is obtained."""
    PRESET = "preset"                # Named regional rate
    CUSTOM_RATE = "custom_rate"      # User-typed percentage
    DIRECT_AMOUNT = "direct_amount"  # User-typed tax amount, used verbatim


class ApportionmentMode(str, Enum):
    """Granularity at which a receipt was split."""
    RECEIPT = "receipt"
    ITEM = "item"


class ApportionmentError(str, Enum):
    """Conditions the apportionment engine reports instead of a split."""
    UNDERFLOW = "apportionment_underflow"


class ExportGrouping(str, Enum):
    """Row layout used when building spreadsheet rows."""
    AUTO = "auto"          # One row per receipt, or per sharing pattern
    PER_ITEM = "per_item"  # One row per line item


# =============================================================================
# RECEIPT MODELS
# =============================================================================

_SNAPSHOT_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
    frozen=True,
)


def _as_name_set(value: Any) -> Any:
    """Accept any iterable of names for an involvement field."""
    if value is None or isinstance(value, frozenset):
        return value
    if isinstance(value, (list, tuple, set)):
        return frozenset(str(name).strip() for name in value if str(name).strip())
    return value


ParticipantSet = Annotated[frozenset[str], BeforeValidator(_as_name_set)]


class ReceiptItem(BaseModel):
    """
    A single line on a receipt.

    unit_price is optional: OCR does not always print one, and an item
    whose unit price was never known keeps it unset when its price is edited.
    """
    model_config = _SNAPSHOT_CONFIG

    description: str = Field(
        default="Unknown Item",
        max_length=200,
        description="What was bought"
    )
    price: Decimal = Field(
        default=Decimal("0"),
        description="Line total (unit price x quantity)"
    )
    unit_price: Optional[Decimal] = Field(
        default=None,
        description="Price per unit, derived when absent"
    )
    quantity: Decimal = Field(
        default=Decimal("1"),
        description="Number of units (non-positive values count as 1)"
    )
    taxable: bool = Field(
        default=True,
        description="Whether the item contributes to the taxable subtotal"
    )
    involved_participants: Optional[ParticipantSet] = Field(
        default=None,
        description="Item-level involvement; None falls back to the receipt"
    )

    @property
    def effective_quantity(self) -> Decimal:
        """Quantity used for arithmetic (never zero or negative)."""
        return self.quantity if self.quantity > 0 else Decimal("1")


class ReceiptData(BaseModel):
    """
    The canonical receipt shape every core operation works on.

    subtotal, tax and total are DERIVED values. They are recomputed from
    the items and the tax configuration after every edit; they are never
    the source of truth while items are present.
    """
    model_config = _SNAPSHOT_CONFIG

    items: list[ReceiptItem] = Field(default_factory=list)

    # Free-text metadata
    vendor: str = Field(
        default="",
        max_length=200,
        description="Store name"
    )
    date: str = Field(
        default="",
        description="ISO 8601 date when parseable, otherwise as read"
    )
    receipt_id: Optional[str] = None

    # Derived amounts
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    tip: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    # Total printed on the receipt, kept for the advisory mismatch check
    reported_total: Optional[Decimal] = None

    # Sharing
    involved_participants: ParticipantSet = Field(
        default_factory=frozenset,
        description="Receipt-level default involvement"
    )
    paid_by: Optional[str] = None
    expense_type: ExpenseType = ExpenseType.OTHER

    raw_text: Optional[str] = Field(
        default=None,
        description="Raw OCR text for debugging"
    )
    file_id: Optional[str] = Field(
        default=None,
        description="Opaque identifier of the backed-up receipt image"
    )
    saved_at: Optional[datetime] = Field(
        default=None,
        description="Set when persisted to local history, never edited"
    )


class TaxConfig(BaseModel):
    """
    Tax configuration chosen by the user.

    Rates are whole-number percentages (13 means 13%). They are divided
    by 100 only inside compute_tax.
    """
    model_config = ConfigDict(frozen=True)

    mode: TaxMode = TaxMode.PRESET
    rate: Decimal = Field(
        default=Decimal("0"),
        description="Percentage used by the rate modes"
    )
    amount: Decimal = Field(
        default=Decimal("0"),
        description="Tax amount used by DIRECT_AMOUNT"
    )
    preset: Optional[str] = Field(
        default=None,
        description="Preset name when mode is PRESET"
    )

    @field_validator('rate', mode='before')
    @classmethod
    def normalize_rate(cls, v: Any) -> Decimal:
        from receipt_split.calculations.money import to_rate
        return to_rate(v)

    @field_validator('amount', mode='before')
    @classmethod
    def normalize_amount(cls, v: Any) -> Decimal:
        from receipt_split.calculations.money import round_money, to_rate
        return round_money(to_rate(v))


# =============================================================================
# CALCULATION RESULTS
# =============================================================================

class TotalsCheck(BaseModel):
    """Recomputed totals and the advisory comparison with the printed total."""
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    tax: Decimal
    tip: Decimal = Decimal("0")
    total: Decimal
    reported_total: Optional[Decimal] = None
    delta: Optional[Decimal] = Field(
        default=None,
        description="total - reported_total"
    )
    mismatch: bool = False


class Apportionment(BaseModel):
    """
    Result of splitting a receipt among participants.

    When ok is False the shares are empty and error says why;
    a zero-participant split has no sensible numeric default.
    """
    model_config = ConfigDict(frozen=True)

    ok: bool
    mode: ApportionmentMode
    shares: dict[str, Decimal] = Field(default_factory=dict)
    per_person: Optional[Decimal] = Field(
        default=None,
        description="Equal share in receipt-level mode"
    )
    total: Decimal = Decimal("0")
    residual: Decimal = Field(
        default=Decimal("0"),
        description="total minus the sum of rounded shares"
    )
    apportioned_units: int = Field(
        default=0,
        ge=0,
        description="Number of (item, participant) splits that were rounded"
    )
    error: Optional[ApportionmentError] = None
    message: Optional[str] = None
    unassigned_items: list[int] = Field(
        default_factory=list,
        description="Indexes of items nobody is involved in"
    )

    @property
    def is_conserved(self) -> bool:
        """Shares add back up to the total within rounding tolerance."""
        return abs(self.residual) <= MONEY_TOLERANCE * max(1, self.apportioned_units)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue (e.g. 'vendor', 'item-0-price')"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a receipt before export.

    Errors block export; warnings (such as a totals mismatch) never do.
    """

    receipt_id: Optional[str] = None
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    is_valid: bool = Field(
        ...,
        description="No error-level issues were found"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def field_errors(self) -> dict[str, str]:
        """Error messages keyed by field, for annotating a form."""
        return {
            issue.field: issue.message
            for issue in self.issues
            if issue.severity == "error"
        }


# =============================================================================
# EXPORT MODELS
# =============================================================================

class ExportRow(BaseModel):
    """
    One spreadsheet row.

    Column order: date, itemDescription, expenseTypeCode, price, paidBy,
    vendorName, averagePerPerson, then one column per participant.
    """
    model_config = ConfigDict(frozen=True)

    date: str
    item_description: str
    expense_type_code: int
    price: Decimal
    paid_by: str = ""
    vendor_name: str
    average_per_person: Decimal
    participant_shares: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Share per involved participant; absent means blank"
    )

    def to_cells(self, participants: list[str], date_text: Optional[str] = None) -> list[str]:
        """Render the row as text cells in column order."""
        cells = [
            self.date if date_text is None else date_text,
            self.item_description,
            str(self.expense_type_code),
            f"{self.price:.2f}",
            self.paid_by,
            self.vendor_name,
            f"{self.average_per_person:.4f}",
        ]
        for name in participants:
            share = self.participant_shares.get(name)
            cells.append("" if share is None else f"{share:.4f}")
        return cells


class ExportRowSet(BaseModel):
    """Rows produced for one receipt, plus the backup file reference."""
    model_config = ConfigDict(frozen=True)

    participants: list[str]
    rows: list[ExportRow] = Field(default_factory=list)
    grouping: ExportGrouping = ExportGrouping.AUTO
    file_id: Optional[str] = Field(
        default=None,
        description="Backup image identifier, embedded verbatim"
    )

    @property
    def header(self) -> list[str]:
        return [
            "date",
            "itemDescription",
            "expenseTypeCode",
            "price",
            "paidBy",
            "vendorName",
            "averagePerPerson",
            *self.participants,
        ]

    def to_values(self, include_file_id: bool = True) -> list[list[str]]:
        """Rows as cell lists, with the file id appended when present."""
        values = []
        for row in self.rows:
            cells = row.to_cells(self.participants)
            if include_file_id and self.file_id:
                cells.append(self.file_id)
            values.append(cells)
        return values


class ExportResult(BaseModel):
    """
    Outcome of exporting one receipt.

    When success is False, message says which step stopped the export.
    row_set is kept whenever rows were built, so they can still be copied
    to the clipboard by hand.
    """
    success: bool
    receipt: ReceiptData
    validation: Optional[ValidationResult] = None
    apportionment: Optional[Apportionment] = None
    row_set: Optional[ExportRowSet] = None
    file_id: Optional[str] = None
    rows_written: int = 0
    message: str = ""
