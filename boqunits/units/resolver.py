"""Unit resolution: map a free-text unit token to a company's canonical unit.

Matching is a strict, case-insensitive lookup:

1. exact match against a unit's ``name``
2. exact match against a unit's ``abbreviation``

There is no fuzzy matching and no whitespace or plural folding. When several
units match at the same step, ``tie_break`` decides: ``"first"`` keeps the
first one in list order, ``"newest"`` prefers the most recently created.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from boqunits.models import Unit

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

# Tokens up to this length are short enough to serve as their own abbreviation
MAX_VERBATIM_ABBREVIATION = 6


def _fold(value: str | None) -> str | None:
    return value.lower() if value else None


def _created(unit: Unit) -> datetime:
    if unit.created_at is None:
        return _EPOCH
    if unit.created_at.tzinfo is None:
        return unit.created_at.replace(tzinfo=timezone.utc)
    return unit.created_at


def _pick(candidates: list[Unit], tie_break: str) -> Unit | None:
    if not candidates:
        return None
    if tie_break == "newest":
        return max(candidates, key=_created)
    return candidates[0]


def resolve(
    token: str | None,
    units: Sequence[Unit],
    *,
    match_abbreviation: bool = True,
    tie_break: str = "first",
) -> Unit | None:
    """Find the unit a token denotes, or None.

    An empty token is not an error: it simply resolves to nothing.
    """
    needle = _fold(token)
    if not needle:
        return None

    by_name = [u for u in units if _fold(u.name) == needle]
    if by_name:
        return _pick(by_name, tie_break)

    if not match_abbreviation:
        return None

    by_abbreviation = [u for u in units if _fold(u.abbreviation) == needle]
    return _pick(by_abbreviation, tie_break)


def find_by_id(unit_id, units: Sequence[Unit]) -> Unit | None:
    """Look up a unit by id; ids are compared as strings (documents store text)."""
    if not unit_id:
        return None
    wanted = str(unit_id)
    for unit in units:
        if str(unit.id) == wanted:
            return unit
    return None


def derive_abbreviation(token: str) -> str:
    """Abbreviation for a unit created from a free-text token.

    Short tokens are kept verbatim; longer ones become their first three
    characters upper-cased ("Square Meters" -> "SQU", "No." -> "No.").
    """
    if len(token) <= MAX_VERBATIM_ABBREVIATION:
        return token
    return token[:3].upper()
