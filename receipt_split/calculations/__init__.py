"""
Calculation Package

Pure, synchronous functions that normalize numbers, reconcile line items,
resolve tax, verify totals and split receipts among housemates.
None of them perform I/O or keep state between calls.
"""

from receipt_split.calculations.apportionment import (
    apply_receipt_involvement_to_items,
    clear_item_involvement,
    compute_shares,
    item_costs,
    on_roster,
    resolve_item_involvement,
    resolve_roster,
    set_all_participants,
    sharing_groups,
    toggle_item_participant,
    toggle_receipt_participant,
    uses_item_level_involvement,
)
from receipt_split.calculations.editing import (
    add_item,
    remove_item,
    toggle_taxable,
    update_item,
)
from receipt_split.calculations.money import (
    ValueKind,
    effective_quantity,
    round_money,
    to_decimal,
    to_money,
    to_quantity,
    to_rate,
)
from receipt_split.calculations.reconciler import (
    inconsistent_lines,
    line_is_consistent,
    reconcile_item,
)
from receipt_split.calculations.tax import (
    TAX_PRESETS,
    UnknownTaxPresetError,
    compute_tax,
    custom_rate_config,
    direct_amount_config,
    effective_rate,
    preset_config,
    rate_tax,
    subtotal,
    taxable_subtotal,
)
from receipt_split.calculations.totals import (
    check_receipt,
    recalculate_receipt,
    verify_totals,
)

__all__ = [
    # Normalizer
    "ValueKind",
    "effective_quantity",
    "round_money",
    "to_decimal",
    "to_money",
    "to_quantity",
    "to_rate",
    # Reconciler
    "inconsistent_lines",
    "line_is_consistent",
    "reconcile_item",
    # Editing
    "add_item",
    "remove_item",
    "toggle_taxable",
    "update_item",
    # Tax
    "TAX_PRESETS",
    "UnknownTaxPresetError",
    "compute_tax",
    "custom_rate_config",
    "direct_amount_config",
    "effective_rate",
    "preset_config",
    "rate_tax",
    "subtotal",
    "taxable_subtotal",
    # Totals
    "check_receipt",
    "recalculate_receipt",
    "verify_totals",
    # Apportionment
    "apply_receipt_involvement_to_items",
    "clear_item_involvement",
    "compute_shares",
    "item_costs",
    "on_roster",
    "resolve_item_involvement",
    "resolve_roster",
    "set_all_participants",
    "sharing_groups",
    "toggle_item_participant",
    "toggle_receipt_participant",
    "uses_item_level_involvement",
]
