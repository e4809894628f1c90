"""Read-only data-quality audit of BOQ unit references."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boqunits.boq.document import (
    classify_item,
    has_legacy_fields,
    is_well_formed,
    iter_items,
    needs_normalization,
)
from boqunits.db.models import BoqModel
from boqunits.jobs.types import BoqRef
from boqunits.models import UnitState


@dataclass
class AuditCategory:
    """Count of offending BOQs plus a bounded sample of them."""

    label: str
    count: int = 0
    sample: list[BoqRef] = field(default_factory=list)

    def add(self, ref: BoqRef, sample_size: int) -> None:
        self.count += 1
        if len(self.sample) < sample_size:
            self.sample.append(ref)


@dataclass
class AuditReport:
    total_boqs: int = 0
    malformed: int = 0
    # items per unit reference state, across all well-formed BOQs
    item_states: Counter[UnitState] = field(default_factory=Counter)
    legacy_fields: AuditCategory = field(
        default_factory=lambda: AuditCategory("BOQs with legacy unit fields (unit or unit_name)")
    )
    missing_abbreviation: AuditCategory = field(
        default_factory=lambda: AuditCategory("BOQs with missing unit_abbreviation")
    )
    pending_normalization: AuditCategory = field(
        default_factory=lambda: AuditCategory("BOQs pending normalization")
    )

    @property
    def categories(self) -> list[AuditCategory]:
        return [self.legacy_fields, self.missing_abbreviation, self.pending_normalization]


async def audit_units(session: AsyncSession, sample_size: int = 20) -> AuditReport:
    """Scan every BOQ and count unit data-quality problems.

    A BOQ counts once per category however many of its items offend.
    "Missing abbreviation" includes lump-sum items with no unit at all;
    "pending normalization" only counts items that reference some unit.
    """
    report = AuditReport()
    result = await session.execute(
        select(BoqModel.id, BoqModel.number, BoqModel.data).order_by(
            BoqModel.created_at, BoqModel.number
        )
    )

    for row in result:
        report.total_boqs += 1
        if not is_well_formed(row.data):
            report.malformed += 1
            continue

        items = [item for _s, _si, _ii, item in iter_items(row.data)]
        ref = BoqRef(id=row.id, number=row.number)
        report.item_states.update(classify_item(item) for item in items)

        if any(has_legacy_fields(item) for item in items):
            report.legacy_fields.add(ref, sample_size)
        if any(not item.get("unit_abbreviation") for item in items):
            report.missing_abbreviation.add(ref, sample_size)
        if any(needs_normalization(item) for item in items):
            report.pending_normalization.add(ref, sample_size)

    return report
