"""Company-scoped unit registry and token resolution."""

from boqunits.units.registry import (
    create_unit,
    delete_unit,
    load_company_units,
    resolve_or_create,
    update_unit,
)
from boqunits.units.resolver import derive_abbreviation, find_by_id, resolve

__all__ = [
    "create_unit",
    "delete_unit",
    "derive_abbreviation",
    "find_by_id",
    "load_company_units",
    "resolve",
    "resolve_or_create",
    "update_unit",
]
