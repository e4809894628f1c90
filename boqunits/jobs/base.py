"""Shared company -> BOQ -> item loop for the unit batch jobs.

Every job follows the same shape:

1. Iterate companies (optionally under a per-company advisory lock)
2. Load the company's units once, kept in memory for the whole company
3. Walk each BOQ document on a deep copy, applying the job's item step
4. Write the document back once per changed BOQ and bump ``updated_at``

Jobs that never look at units can set ``include_unowned`` to also walk BOQs
that belong to no company.

Nothing is committed here. The caller owns the transaction, so a failure
anywhere discards the whole run.
"""

from __future__ import annotations

import copy
import time
from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from boqunits.boq.document import is_well_formed, iter_items
from boqunits.db.models import BoqModel, CompanyModel
from boqunits.jobs.types import BatchResult, BoqRef
from boqunits.models import Unit
from boqunits.units.registry import load_company_units

logger = structlog.get_logger(__name__)


class BoqBatchJob:
    """Base class for batch jobs over every company's BOQ documents."""

    name = "boq-batch"
    updated_event = "boq_updated"
    include_unowned = False

    def __init__(self, *, tie_break: str = "first", advisory_lock: bool = True):
        self.tie_break = tie_break
        self.advisory_lock = advisory_lock
        self.result = BatchResult(job=self.name)

    async def process_item(
        self,
        session: AsyncSession,
        company_id: UUID | None,
        units: list[Unit],
        item: dict,
    ) -> bool:
        """Apply the job's step to one item in place; return True if it changed."""
        raise NotImplementedError

    async def run(self, session: AsyncSession) -> BatchResult:
        started = time.perf_counter()
        self.result = BatchResult(job=self.name)
        logger.info("batch_started", job=self.name)

        company_ids = (
            await session.execute(
                select(CompanyModel.id).order_by(CompanyModel.created_at, CompanyModel.id)
            )
        ).scalars().all()

        for company_id in company_ids:
            await self._lock_company(session, company_id)
            units = await load_company_units(session, company_id)
            await self._process_company(session, company_id, units)
            self.result.companies_scanned += 1

        if self.include_unowned:
            await self._process_company(session, None, [])

        await session.flush()
        self.result.duration_seconds = time.perf_counter() - started

        logger.info(
            "batch_finished",
            job=self.name,
            companies=self.result.companies_scanned,
            boqs_scanned=self.result.boqs_scanned,
            boqs_updated=self.result.boqs_updated,
            items_updated=self.result.items_updated,
            units_created=self.result.units_created,
        )
        return self.result

    async def _lock_company(self, session: AsyncSession, company_id: UUID) -> None:
        """Serialize concurrent runs per company (PostgreSQL only).

        The lock is transaction scoped and released at commit or rollback.
        """
        if not self.advisory_lock:
            return
        if session.get_bind().dialect.name != "postgresql":
            return
        await session.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
            {"key": f"boqunits:{company_id}"},
        )

    async def _process_company(
        self, session: AsyncSession, company_id: UUID | None, units: list[Unit]
    ) -> None:
        if company_id is None:
            owner = BoqModel.company_id.is_(None)
        else:
            owner = BoqModel.company_id == company_id
        boqs = (
            await session.execute(
                select(BoqModel)
                .where(owner)
                .order_by(BoqModel.created_at, BoqModel.number)
            )
        ).scalars().all()

        for boq in boqs:
            self.result.boqs_scanned += 1
            if not is_well_formed(boq.data):
                self.result.anomalies_skipped += 1
                continue

            data = copy.deepcopy(boq.data)
            touched = 0
            for _section, _section_index, _item_index, item in iter_items(data):
                if await self.process_item(session, company_id, units, item):
                    touched += 1

            if not touched:
                continue

            boq.data = data
            boq.updated_at = datetime.now(timezone.utc)
            self.result.items_updated += touched
            self.result.updated_boqs.append(BoqRef(id=boq.id, number=boq.number))
            logger.info(
                self.updated_event,
                job=self.name,
                boq_id=str(boq.id),
                number=boq.number,
                items=touched,
            )
