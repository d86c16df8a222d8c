"""
Tax Resolver

Computes the receipt tax from one of three modes:
1. PRESET        - a named regional rate
2. CUSTOM_RATE   - a percentage typed by the user
3. DIRECT_AMOUNT - a tax amount typed by the user, used verbatim

Rate modes apply to the taxable subtotal. When every item is taxable
that is the same as the full subtotal.

DESIGN DECISION: Rates are stored as whole-number percentages (13, not 0.13)
and divided by 100 in exactly one place, rate_tax(). Keeping the scaling
in one function prevents a rate from being divided twice when the
user edits it repeatedly.
"""

from decimal import Decimal
from typing import Iterable, Optional

from receipt_split.calculations.money import round_money
from receipt_split.models.receipt import ReceiptItem, TaxConfig, TaxMode


HUNDRED = Decimal("100")

# Regional rates offered by the tax picker (percentages)
TAX_PRESETS: dict[str, Decimal] = {
    "ontario_hst": Decimal("13"),
    "quebec_gst_qst": Decimal("14.975"),
    "british_columbia_gst_pst": Decimal("12"),
    "alberta_gst": Decimal("5"),
    "nova_scotia_hst": Decimal("15"),
    "new_brunswick_hst": Decimal("15"),
    "newfoundland_hst": Decimal("15"),
    "pei_hst": Decimal("15"),
    "saskatchewan_gst_pst": Decimal("11"),
    "manitoba_gst_pst": Decimal("12"),
    "no_tax": Decimal("0"),
}


class UnknownTaxPresetError(KeyError):
    """Raised when building a TaxConfig for a preset that does not exist."""
    pass


def preset_config(name: str) -> TaxConfig:
    """
    Build a PRESET TaxConfig from its name.

    Raises:
        UnknownTaxPresetError: If the name is not in TAX_PRESETS
    """
    key = name.strip().lower()
    if key not in TAX_PRESETS:
        raise UnknownTaxPresetError(
            f"Unknown tax preset: {name}. Known presets: {', '.join(TAX_PRESETS)}"
        )
    return TaxConfig(mode=TaxMode.PRESET, rate=TAX_PRESETS[key], preset=key)


def custom_rate_config(rate) -> TaxConfig:
    """TaxConfig for a user-typed percentage ('13', '13%', 14.975 ...)."""
    return TaxConfig(mode=TaxMode.CUSTOM_RATE, rate=rate)


def direct_amount_config(amount) -> TaxConfig:
    """TaxConfig for a user-typed tax amount."""
    return TaxConfig(mode=TaxMode.DIRECT_AMOUNT, amount=amount)


def subtotal(items: Iterable[ReceiptItem]) -> Decimal:
    """Sum of every item price, taxable or not."""
    return sum((item.price for item in items), Decimal("0"))


def taxable_subtotal(items: Iterable[ReceiptItem]) -> Decimal:
    """Sum of the prices of items flagged taxable."""
    return sum((item.price for item in items if item.taxable), Decimal("0"))


def rate_tax(base: Decimal, rate: Decimal) -> Decimal:
    """Apply a whole-number percentage to a base amount, rounded to cents."""
    return round_money(base * rate / HUNDRED)


def compute_tax(items: list[ReceiptItem], config: Optional[TaxConfig]) -> Decimal:
    """
    Compute the tax for a receipt.

    Args:
        items: Reconciled line items
        config: Tax mode and its parameter. None means no tax.

    Returns:
        Tax amount rounded to 2 decimals.
    """
    if config is None:
        return Decimal("0.00")

    if config.mode == TaxMode.DIRECT_AMOUNT:
        return round_money(config.amount)

    return rate_tax(taxable_subtotal(items), config.rate)


def effective_rate(items: list[ReceiptItem], tax: Decimal) -> Optional[Decimal]:
    """
    Percentage the given tax represents over the taxable subtotal.

    Useful for showing what a direct amount corresponds to.
    Returns None when the taxable subtotal is zero.
    """
    base = taxable_subtotal(items)
    if base == 0:
        return None
    return (tax * HUNDRED / base).quantize(Decimal("0.001"))
