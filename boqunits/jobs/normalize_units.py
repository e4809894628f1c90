"""Repeatable normalization of BOQ unit references (safe to run nightly).

Fills in ``unit_abbreviation`` and, where it can be derived, ``unit_id``.
Lookup only: no units are created. Items whose unit cannot be found are left
as they are and retried on the next run.

Usage:
    boqunits normalize-units [--dry-run]
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from boqunits.boq.document import normalize_item
from boqunits.jobs.base import BoqBatchJob
from boqunits.models import Unit


class UnitNormalizationJob(BoqBatchJob):
    name = "unit-normalization"
    updated_event = "boq_normalized"

    async def process_item(
        self,
        session: AsyncSession,
        company_id: UUID,
        units: list[Unit],
        item: dict,
    ) -> bool:
        return normalize_item(item, units, tie_break=self.tie_break)
