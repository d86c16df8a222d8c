"""
Involvement / Apportionment Engine

Works out who owes what for a receipt.

Two levels of involvement exist:
- Receipt level: the default set of housemates sharing the receipt
- Item level: an optional set on a single item that overrides the
  receipt-level set for that item only

Item-level sets are read with a fallback, never copied: an item without
its own set follows whatever the receipt-level set is at the time of
the calculation. Copying the receipt set onto every item is a separate,
explicit action (apply_receipt_involvement_to_items).

SPLITTING RULES:
1. No item overrides the receipt set -> receipt-level split:
   every involved housemate pays total / number involved.
2. Any item overrides it -> item-level split:
   each item's cost (price plus its proportional slice of tax and tip)
   is divided equally among the housemates involved in that item.

Per-person amounts accumulate unrounded and are rounded once, so the
shares add back up to the total within a cent per rounded split.

A split with nobody involved is reported as an UNDERFLOW result rather
than zeroed out.
"""

from decimal import Decimal
from typing import Iterable, Optional

from receipt_split.calculations.money import round_money
from receipt_split.calculations.tax import subtotal, taxable_subtotal
from receipt_split.config import get_settings
from receipt_split.models.receipt import (
    Apportionment,
    ApportionmentError,
    ApportionmentMode,
    ReceiptData,
    ReceiptItem,
)


ZERO = Decimal("0")


def resolve_roster(participants: Optional[list[str]]) -> list[str]:
    """The given roster, or the configured household when None."""
    if participants is None:
        return get_settings().household.participant_list
    return list(participants)


def _tax_allocation(tax_allocation: Optional[str]) -> str:
    if tax_allocation is None:
        return get_settings().household.tax_allocation
    return tax_allocation


def on_roster(names: Iterable[str], participants: list[str]) -> list[str]:
    """Involved names in roster order; names not on the roster are ignored."""
    names = set(names)
    return [name for name in participants if name in names]


def resolve_item_involvement(item: ReceiptItem, receipt: ReceiptData) -> frozenset[str]:
    """Item-level involvement when set, otherwise the receipt-level set."""
    if item.involved_participants is not None:
        return item.involved_participants
    return receipt.involved_participants


def uses_item_level_involvement(receipt: ReceiptData) -> bool:
    """True when any item declares involvement different from the receipt's."""
    return any(
        item.involved_participants is not None
        and item.involved_participants != receipt.involved_participants
        for item in receipt.items
    )


def item_costs(receipt: ReceiptData, tax_allocation: Optional[str] = None) -> list[Decimal]:
    """
    Unrounded cost of every item once tax and tip are folded in.

    Tax is spread in proportion to each item's share of the subtotal
    ("subtotal") or of the taxable subtotal ("taxable"). Tip always
    follows the subtotal share. When a base is zero the amount is
    spread equally over the items instead.
    """
    allocation = _tax_allocation(tax_allocation)
    items = receipt.items

    full_base = subtotal(items)
    if allocation == "taxable" and taxable_subtotal(items) != 0:
        tax_base = taxable_subtotal(items)
        tax_weights = [item.price if item.taxable else ZERO for item in items]
    else:
        tax_base = full_base
        tax_weights = [item.price for item in items]

    if not items:
        return []
    count = len(items)

    costs = []
    for item, weight in zip(items, tax_weights):
        cost = item.price
        if tax_base != 0:
            cost += receipt.tax * weight / tax_base
        else:
            cost += receipt.tax / count
        if full_base != 0:
            cost += receipt.tip * item.price / full_base
        else:
            cost += receipt.tip / count
        costs.append(cost)
    return costs


def _underflow(
    mode: ApportionmentMode,
    total: Decimal,
    message: str,
    unassigned: list[int],
) -> Apportionment:
    return Apportionment(
        ok=False,
        mode=mode,
        total=total,
        residual=total,
        error=ApportionmentError.UNDERFLOW,
        message=message,
        unassigned_items=unassigned,
    )


def compute_shares(
    receipt: ReceiptData,
    participants: Optional[list[str]] = None,
    tax_allocation: Optional[str] = None,
) -> Apportionment:
    """
    Compute each participant's share of a receipt.

    Args:
        receipt: Reconciled receipt (total already derived)
        participants: Ordered roster; defaults to the configured household
        tax_allocation: "subtotal" or "taxable"; defaults to configuration

    Returns:
        Apportionment with one share per roster member (0 for the
        uninvolved), or an UNDERFLOW result when a split has nobody to
        divide by.
    """
    roster = resolve_roster(participants)
    total = receipt.total

    if not uses_item_level_involvement(receipt):
        involved = on_roster(receipt.involved_participants, roster)
        if not involved:
            return _underflow(
                ApportionmentMode.RECEIPT,
                total,
                "Nobody is involved in this receipt",
                list(range(len(receipt.items))),
            )

        per_person = round_money(total / len(involved))
        shares = {
            name: per_person if name in involved else Decimal("0.00")
            for name in roster
        }
        return Apportionment(
            ok=True,
            mode=ApportionmentMode.RECEIPT,
            shares=shares,
            per_person=per_person,
            total=total,
            residual=total - sum(shares.values(), ZERO),
            apportioned_units=len(involved),
        )

    item_people = [
        on_roster(resolve_item_involvement(item, receipt), roster)
        for item in receipt.items
    ]
    unassigned = [index for index, people in enumerate(item_people) if not people]
    if unassigned:
        return _underflow(
            ApportionmentMode.ITEM,
            total,
            f"Nobody is involved in {len(unassigned)} item(s)",
            unassigned,
        )

    exact = {name: ZERO for name in roster}
    units = 0
    for cost, people in zip(item_costs(receipt, tax_allocation), item_people):
        per_person_for_item = cost / len(people)
        for name in people:
            exact[name] += per_person_for_item
        units += len(people)

    shares = {name: round_money(amount) for name, amount in exact.items()}
    return Apportionment(
        ok=True,
        mode=ApportionmentMode.ITEM,
        shares=shares,
        total=total,
        residual=total - sum(shares.values(), ZERO),
        apportioned_units=units,
    )


def sharing_groups(
    receipt: ReceiptData,
    participants: Optional[list[str]] = None,
) -> list[tuple[tuple[str, ...], list[int]]]:
    """
    Group item indexes by the set of people sharing them.

    Groups are ordered by the first item that uses each sharing pattern.
    """
    roster = resolve_roster(participants)
    groups: dict[tuple[str, ...], list[int]] = {}
    for index, item in enumerate(receipt.items):
        people = tuple(on_roster(resolve_item_involvement(item, receipt), roster))
        groups.setdefault(people, []).append(index)
    return list(groups.items())


# =============================================================================
# INVOLVEMENT EDITS - explicit user actions, each returning a new receipt
# =============================================================================

def _toggled(names: frozenset[str], name: str) -> frozenset[str]:
    return names - {name} if name in names else names | {name}


def toggle_receipt_participant(receipt: ReceiptData, name: str) -> ReceiptData:
    """Add or remove a housemate from the receipt-level set."""
    return receipt.model_copy(
        update={"involved_participants": _toggled(receipt.involved_participants, name)}
    )


def set_all_participants(
    receipt: ReceiptData,
    involved: bool,
    participants: Optional[list[str]] = None,
) -> ReceiptData:
    """Select or deselect every housemate at receipt level."""
    names = frozenset(resolve_roster(participants)) if involved else frozenset()
    return receipt.model_copy(update={"involved_participants": names})


def _replace_item(receipt: ReceiptData, index: int, item: ReceiptItem) -> ReceiptData:
    items = list(receipt.items)
    items[index] = item
    return receipt.model_copy(update={"items": items})


def toggle_item_participant(receipt: ReceiptData, index: int, name: str) -> ReceiptData:
    """
    Add or remove a housemate from one item.

    An item without its own set starts from the receipt-level set, so the
    first toggle only changes the housemate that was clicked.
    """
    item = receipt.items[index]
    current = resolve_item_involvement(item, receipt)
    return _replace_item(
        receipt,
        index,
        item.model_copy(update={"involved_participants": _toggled(current, name)}),
    )


def clear_item_involvement(receipt: ReceiptData, index: int) -> ReceiptData:
    """Drop an item's own set so it follows the receipt level again."""
    item = receipt.items[index]
    return _replace_item(
        receipt, index, item.model_copy(update={"involved_participants": None})
    )


def apply_receipt_involvement_to_items(receipt: ReceiptData) -> ReceiptData:
    """Copy the receipt-level set onto every item (bulk action)."""
    items = [
        item.model_copy(update={"involved_participants": receipt.involved_participants})
        for item in receipt.items
    ]
    return receipt.model_copy(update={"items": items})
