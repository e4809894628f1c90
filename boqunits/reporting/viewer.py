"""Flatten a BOQ document into rows for the viewer and the PDF renderer."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal

from boqunits.boq.document import PLACEHOLDER, display_unit, iter_sections, line_amount, to_decimal
from boqunits.models import BoqRow, Unit


def boq_rows(
    data,
    units: Mapping[str, Unit] | Sequence[Unit] | None = None,
    placeholder: str = PLACEHOLDER,
) -> list[BoqRow]:
    """Section title rows followed by their item rows.

    Quantity defaults to 1 for lump-sum items; the amount is the stored
    ``amount`` or quantity x rate.
    """
    rows: list[BoqRow] = []
    for _index, section in iter_sections(data):
        title = section.get("title")
        if title:
            rows.append(BoqRow(description=str(title), is_section=True))

        items = section.get("items")
        if not isinstance(items, list):
            continue
        for item in items:
            if not isinstance(item, dict):
                continue
            rows.append(
                BoqRow(
                    description=str(item.get("description") or ""),
                    quantity=to_decimal(item.get("quantity"), Decimal("1")),
                    unit=display_unit(item, units, placeholder),
                    rate=to_decimal(item.get("rate")),
                    amount=line_amount(item),
                )
            )
    return rows


def subtotal(rows: Sequence[BoqRow]) -> Decimal:
    return sum((row.amount for row in rows if not row.is_section), Decimal("0"))
