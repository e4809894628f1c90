"""BOQ document walking, unit state and display helpers."""

from boqunits.boq.document import (
    apply_unit,
    classify_item,
    display_unit,
    has_legacy_fields,
    iter_items,
    line_amount,
    migration_token,
    needs_normalization,
    normalize_item,
    strip_legacy_fields,
)

__all__ = [
    "apply_unit",
    "classify_item",
    "display_unit",
    "has_legacy_fields",
    "iter_items",
    "line_amount",
    "migration_token",
    "needs_normalization",
    "normalize_item",
    "strip_legacy_fields",
]
