"""
Involvement translation adapter.

Older payloads describe who shares a receipt in one of two ways:
- a 0/1 mapping keyed by housemate ({"Alice": 1, "Bob": 0})
- a plain list of names (the legacy sharedWith field)

Inside the package involvement is always a frozenset of names. This module
is the only place the other forms are read or produced.
"""

from typing import Any, Iterable, Mapping, Optional

from receipt_split.calculations.money import to_quantity


# Payload keys, newest first
INVOLVEMENT_KEYS = ("involvedParticipants", "involved_participants", "involvedHousemates")
SHARED_WITH_KEYS = ("sharedWith", "shared_with")


def _flag_is_set(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return to_quantity(value) > 0


def from_mapping(mapping: Mapping[str, Any]) -> frozenset[str]:
    """Names whose flag is 1 (or any positive / truthy value)."""
    return frozenset(
        str(name).strip()
        for name, flag in mapping.items()
        if str(name).strip() and _flag_is_set(flag)
    )


def from_names(names: Iterable[Any]) -> frozenset[str]:
    """Names from a sharedWith-style list, blanks dropped."""
    return frozenset(str(name).strip() for name in names if str(name).strip())


def to_mapping(involved: Iterable[str], participants: list[str]) -> dict[str, int]:
    """0/1 mapping over the roster, in roster order."""
    involved = set(involved)
    return {name: 1 if name in involved else 0 for name in participants}


def parse_involvement(value: Any) -> Optional[frozenset[str]]:
    """
    Read one involvement value in whichever form it arrives.

    Returns:
        The set of names, or None when the value carries no involvement
        (absent, or not a mapping or list).
    """
    if isinstance(value, Mapping):
        return from_mapping(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return from_names(value)
    return None


def involvement_from_payload(payload: Mapping[str, Any]) -> Optional[frozenset[str]]:
    """
    Find involvement on a receipt or item payload.

    The mapping keys win over sharedWith. An empty sharedWith list is
    treated as absent, matching how older exports wrote "nobody chosen yet".
    """
    for key in INVOLVEMENT_KEYS:
        if key in payload:
            involved = parse_involvement(payload[key])
            if involved is not None:
                return involved

    for key in SHARED_WITH_KEYS:
        names = payload.get(key)
        if isinstance(names, (list, tuple)) and names:
            return from_names(names)

    return None
