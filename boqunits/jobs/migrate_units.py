"""One-shot migration of free-text BOQ units to canonical ``unit_id`` references.

Each item without a ``unit_id`` has its ``unit_name`` (or, failing that, its
legacy ``unit``) resolved against the company's units. Tokens with no match
become new units. Items without any unit text are lump-sum lines and are left
alone. Re-running the job only touches items that still lack a ``unit_id``.

Usage:
    boqunits migrate-units [--dry-run]
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from boqunits.boq.document import apply_unit, migration_token
from boqunits.jobs.base import BoqBatchJob
from boqunits.models import Unit
from boqunits.units.registry import resolve_or_create


class UnitMigrationJob(BoqBatchJob):
    name = "unit-migration"
    updated_event = "boq_migrated"

    def __init__(self, *, created_by: str | None = "unit-migration", **kwargs):
        super().__init__(**kwargs)
        self.created_by = created_by

    async def process_item(
        self,
        session: AsyncSession,
        company_id: UUID,
        units: list[Unit],
        item: dict,
    ) -> bool:
        token = migration_token(item)
        if token is None:
            return False

        unit, created = await resolve_or_create(
            session,
            token,
            company_id,
            units,
            created_by=self.created_by,
            tie_break=self.tie_break,
        )
        if created:
            self.result.units_created += 1

        apply_unit(item, unit)
        return True
