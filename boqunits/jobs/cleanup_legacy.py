"""Destructive removal of legacy ``unit``/``unit_name`` fields.

Only items that already carry a ``unit_id`` are touched. Run after the
migration (and preferably after normalization): an item with a ``unit_id``
but no cached abbreviation otherwise loses its last readable unit text.
``require_abbreviation=True`` makes the job skip such items. BOQs with no
company are cleaned too, since the step needs no unit lookup.

Usage:
    boqunits cleanup-legacy-units [--dry-run] [--require-abbreviation]
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from boqunits.boq.document import strip_legacy_fields
from boqunits.jobs.base import BoqBatchJob
from boqunits.models import Unit


class LegacyUnitCleanupJob(BoqBatchJob):
    name = "legacy-unit-cleanup"
    updated_event = "boq_cleaned"
    include_unowned = True

    def __init__(self, *, require_abbreviation: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.require_abbreviation = require_abbreviation

    async def process_item(
        self,
        session: AsyncSession,
        company_id: UUID | None,
        units: list[Unit],
        item: dict,
    ) -> bool:
        return strip_legacy_fields(item, require_abbreviation=self.require_abbreviation)
