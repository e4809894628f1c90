"""Helpers over the semi-structured BOQ ``data`` document.

A BOQ document holds ``sections[].items[]``. Each item may carry any mix of
three generations of unit reference:

- ``unit``: legacy free text from the first BOQ entry form
- ``unit_name``: later free-text name, sometimes used instead of ``unit``
- ``unit_id`` + ``unit_abbreviation``: canonical reference and display cache

Historical documents are not guaranteed to be well formed, so every walker
here treats a missing or non-list ``sections``/``items`` as empty.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from boqunits.models import Unit, UnitState
from boqunits.units.resolver import find_by_id, resolve

LEGACY_FIELDS = ("unit", "unit_name")
PLACEHOLDER = "-"


def iter_sections(data: Any) -> Iterator[tuple[int, dict]]:
    if not isinstance(data, Mapping):
        return
    sections = data.get("sections")
    if not isinstance(sections, list):
        return
    for index, section in enumerate(sections):
        if isinstance(section, dict):
            yield index, section


def iter_items(data: Any) -> Iterator[tuple[dict, int, int, dict]]:
    """Yield ``(section, section_index, item_index, item)`` for every item."""
    for section_index, section in iter_sections(data):
        items = section.get("items")
        if not isinstance(items, list):
            continue
        for item_index, item in enumerate(items):
            if isinstance(item, dict):
                yield section, section_index, item_index, item


def is_well_formed(data: Any) -> bool:
    """True when the document has a ``sections`` list to walk."""
    return isinstance(data, Mapping) and isinstance(data.get("sections"), list)


def classify_item(item: Mapping) -> UnitState:
    if item.get("unit_id"):
        return UnitState.NORMALIZED if item.get("unit_abbreviation") else UnitState.CANONICAL
    if item.get("unit_name"):
        return UnitState.NAMED
    if item.get("unit"):
        return UnitState.LEGACY
    return UnitState.NONE


def has_legacy_fields(item: Mapping) -> bool:
    return bool(item.get("unit") or item.get("unit_name"))


def needs_normalization(item: Mapping) -> bool:
    """Item lacks a cached abbreviation but references a unit somehow."""
    return not item.get("unit_abbreviation") and classify_item(item) is not UnitState.NONE


def migration_token(item: Mapping) -> str | None:
    """Free-text unit to migrate, or None if the item needs no migration.

    Items that already have a ``unit_id`` are skipped; ``unit_name`` wins
    over ``unit`` when both are present.
    """
    if item.get("unit_id"):
        return None
    token = item.get("unit_name") or item.get("unit")
    if not token:
        return None
    return str(token)


def apply_unit(item: dict, unit: Unit) -> None:
    """Point an item at a canonical unit (migration write-back)."""
    item["unit_id"] = str(unit.id)
    item["unit_name"] = unit.name
    item["unit_abbreviation"] = unit.abbreviation or None


def normalize_item(item: dict, units: Sequence[Unit], *, tie_break: str = "first") -> bool:
    """Fill in ``unit_abbreviation`` (and ``unit_id`` where derivable).

    Lookup only: never creates units. Items that already have an
    abbreviation are left alone. Returns True if the item changed.
    """
    if item.get("unit_abbreviation"):
        return False

    if item.get("unit_id"):
        unit = find_by_id(item["unit_id"], units)
        if unit is None:
            return False
        item["unit_abbreviation"] = unit.display
        item["unit_name"] = unit.name
        return True

    if item.get("unit_name"):
        unit = resolve(str(item["unit_name"]), units, match_abbreviation=False, tie_break=tie_break)
        if unit is None:
            return False
        item["unit_id"] = str(unit.id)
        item["unit_abbreviation"] = unit.display
        return True

    if item.get("unit"):
        unit = resolve(str(item["unit"]), units, tie_break=tie_break)
        if unit is None:
            return False
        item["unit_id"] = str(unit.id)
        item["unit_abbreviation"] = unit.display
        item["unit_name"] = unit.name
        return True

    return False


def strip_legacy_fields(item: dict, *, require_abbreviation: bool = False) -> bool:
    """Drop ``unit``/``unit_name`` from an item that has a ``unit_id``.

    With ``require_abbreviation`` the item must also carry a cached
    ``unit_abbreviation``, so it never loses its last readable unit text.
    Returns True if the item changed.
    """
    if not item.get("unit_id") or not has_legacy_fields(item):
        return False
    if require_abbreviation and not item.get("unit_abbreviation"):
        return False
    item.pop("unit", None)
    item.pop("unit_name", None)
    return True


def units_by_id(units: Sequence[Unit]) -> dict[str, Unit]:
    return {str(unit.id): unit for unit in units}


def display_unit(
    item: Mapping,
    units: Mapping[str, Unit] | Sequence[Unit] | None = None,
    placeholder: str = PLACEHOLDER,
) -> str:
    """Unit text a viewer or PDF shows for an item.

    Precedence:
    1. ``unit_id`` resolvable in the company's units: abbreviation, else name
    2. ``unit_name`` verbatim
    3. legacy ``unit`` verbatim
    4. ``placeholder``

    With ``units=None`` (no registry at hand) step 1 uses the cached
    ``unit_abbreviation`` instead of a lookup. Never raises on partial data.
    """
    unit_id = item.get("unit_id")
    if unit_id:
        if units is None:
            cached = item.get("unit_abbreviation")
            if cached:
                return str(cached)
        else:
            if isinstance(units, Mapping):
                unit = units.get(str(unit_id))
            else:
                unit = find_by_id(unit_id, units)
            if unit is not None:
                return unit.display

    if item.get("unit_name"):
        return str(item["unit_name"])
    if item.get("unit"):
        return str(item["unit"])
    return placeholder


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    return number if number.is_finite() else default


def line_amount(item: Mapping) -> Decimal:
    """``amount`` if stored, else quantity x rate (quantity defaults to 1)."""
    if item.get("amount") not in (None, ""):
        return to_decimal(item.get("amount"))
    quantity = to_decimal(item.get("quantity"), Decimal("1"))
    return quantity * to_decimal(item.get("rate"))
