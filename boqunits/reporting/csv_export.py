"""CSV export of every BOQ item's unit reference.

One row per item, columns:
boq_id, boq_number, company_id, section_title, item_index, item_description,
unit_id, unit_name, unit_abbreviation, rate, quantity, line_total

``item_index`` is the position within its section, not a global index.

Only ``boq_number`` and ``section_title`` have newlines replaced by spaces.
Descriptions and unit fields keep embedded newlines inside their quotes, so a
CSV reader gets the stored text back unchanged.
"""

from __future__ import annotations

import csv
from collections.abc import AsyncGenerator
from io import StringIO
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from boqunits.boq.document import iter_items
from boqunits.db.models import BoqModel

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

HEADERS = [
    "boq_id",
    "boq_number",
    "company_id",
    "section_title",
    "item_index",
    "item_description",
    "unit_id",
    "unit_name",
    "unit_abbreviation",
    "rate",
    "quantity",
    "line_total",
]


def _single_line(value: Any) -> str:
    if value is None:
        return ""
    return str(value).replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _number(value: Any) -> Any:
    """Stored numeric field as-is (unquoted if numeric), or blank."""
    if value is None or isinstance(value, bool):
        return ""
    return value


def _stored_line_total(item: dict) -> Any:
    for key in ("line_total", "amount"):
        if item.get(key) not in (None, ""):
            return item[key]
    return ""


async def export_units_csv(session: AsyncSession) -> AsyncGenerator[str, None]:
    """Generate CSV stream of BOQ items with their unit references.

    Strings are quoted with embedded quotes doubled; BOQ numbers and section
    titles are flattened to a single line.

    Yields:
        CSV rows as strings
    """
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")

    writer.writerow(HEADERS)
    yield output.getvalue()
    output.seek(0)
    output.truncate(0)

    result = await session.stream(
        select(BoqModel.id, BoqModel.number, BoqModel.company_id, BoqModel.data).order_by(
            BoqModel.created_at, BoqModel.number
        )
    )

    async for row in result:
        for section, _section_index, item_index, item in iter_items(row.data):
            writer.writerow([
                str(row.id),
                _single_line(row.number),
                _text(row.company_id),
                _single_line(section.get("title")),
                item_index,
                _text(item.get("description")),
                _text(item.get("unit_id")),
                _text(item.get("unit_name")),
                _text(item.get("unit_abbreviation")),
                _number(item.get("rate")),
                _number(item.get("quantity")),
                _number(_stored_line_total(item)),
            ])
            yield output.getvalue()
            output.seek(0)
            output.truncate(0)


async def write_units_csv(session: AsyncSession, path: Path) -> int:
    """Write the export to ``path`` (parent directories created).

    Returns:
        Number of item rows written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = -1  # header
    with path.open("w", encoding="utf-8", newline="") as handle:
        async for chunk in export_units_csv(session):
            handle.write(chunk)
            rows += 1
    return rows
