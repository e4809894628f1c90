"""Run a batch job inside one all-or-nothing transaction."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from boqunits.core.errors import BatchJobError
from boqunits.db.connection import get_session
from boqunits.jobs.base import BoqBatchJob
from boqunits.jobs.types import BatchResult

logger = structlog.get_logger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


async def execute_job(
    job: BoqBatchJob,
    *,
    dry_run: bool = False,
    session_scope: SessionScope = get_session,
) -> BatchResult:
    """Run ``job`` across all companies in a single transaction.

    The session scope commits on success and rolls back on error. A dry run
    rolls back after the job reports what it would have changed.

    Raises:
        BatchJobError: If anything fails; no changes are kept
    """
    try:
        async with session_scope() as session:
            result = await job.run(session)
            result.dry_run = dry_run
            if dry_run:
                await session.rollback()
                logger.info("dry_run_rolled_back", job=job.name)
    except Exception as exc:
        logger.error("batch_failed", job=job.name, error=str(exc))
        raise BatchJobError(job.name, job.result.boqs_updated, exc) from exc
    return result
