"""Unit registry persistence: the company-scoped ``units`` table."""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

from sqlalchemy import insert as generic_insert
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boqunits.core.errors import UnitConflictError
from boqunits.db.models import UnitModel
from boqunits.models import Unit
from boqunits.units.resolver import derive_abbreviation, resolve

logger = logging.getLogger(__name__)

_UNSET = object()


def _insert_ignoring_conflicts(session: AsyncSession):
    """Dialect-specific INSERT ... ON CONFLICT DO NOTHING on (company_id, name)."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        # Other backends surface the IntegrityError instead
        return generic_insert(UnitModel)
    return insert(UnitModel).on_conflict_do_nothing(index_elements=["company_id", "name"])


async def load_company_units(session: AsyncSession, company_id: UUID) -> list[Unit]:
    """Return a company's units, oldest first."""
    result = await session.execute(
        select(UnitModel)
        .where(UnitModel.company_id == company_id)
        .order_by(UnitModel.created_at, UnitModel.name)
    )
    return [Unit.model_validate(row) for row in result.scalars().all()]


async def insert_unit_if_absent(
    session: AsyncSession,
    company_id: UUID,
    name: str,
    abbreviation: str | None,
    created_by: str | None = None,
) -> Unit | None:
    """Insert a unit; return None if ``(company_id, name)`` already exists."""
    stmt = (
        _insert_ignoring_conflicts(session)
        .values(
            id=uuid4(),
            company_id=company_id,
            name=name,
            abbreviation=abbreviation,
            created_by=created_by,
        )
        .returning(
            UnitModel.id,
            UnitModel.company_id,
            UnitModel.name,
            UnitModel.abbreviation,
            UnitModel.created_at,
        )
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        return None
    return Unit.model_validate(dict(row._mapping))


async def create_unit(
    session: AsyncSession,
    company_id: UUID,
    name: str,
    abbreviation: str | None = None,
    created_by: str | None = None,
) -> Unit:
    """Create a unit for a company.

    Raises:
        ValueError: If the name is blank
        UnitConflictError: If the company already has a unit with this name
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Unit name is required")
    abbreviation = (abbreviation or "").strip() or None

    unit = await insert_unit_if_absent(session, company_id, name, abbreviation, created_by)
    if unit is None:
        raise UnitConflictError(company_id, name)
    return unit


async def update_unit(
    session: AsyncSession,
    unit_id: UUID,
    name: str | None = None,
    abbreviation=_UNSET,
) -> Unit | None:
    """Rename a unit and/or change its abbreviation.

    Pass ``abbreviation=None`` to clear it. Returns None if the unit is gone.
    BOQ documents keep their cached ``unit_abbreviation`` until re-normalized.
    """
    unit = await session.get(UnitModel, unit_id)
    if unit is None:
        return None

    if name is not None:
        name = name.strip()
        if not name:
            raise ValueError("Unit name is required")
        if name != unit.name:
            clash = await session.execute(
                select(UnitModel.id).where(
                    UnitModel.company_id == unit.company_id,
                    UnitModel.name == name,
                )
            )
            if clash.first() is not None:
                raise UnitConflictError(unit.company_id, name)
            unit.name = name

    if abbreviation is not _UNSET:
        unit.abbreviation = (abbreviation or "").strip() or None

    await session.flush()
    await session.refresh(unit)
    return Unit.model_validate(unit)


async def delete_unit(session: AsyncSession, unit_id: UUID) -> bool:
    """Delete a unit. BOQ items referencing it keep a dangling ``unit_id``."""
    unit = await session.get(UnitModel, unit_id)
    if unit is None:
        return False
    await session.delete(unit)
    await session.flush()
    logger.info(f"Deleted unit {unit_id} ({unit.name}); BOQ references are not rewritten")
    return True


async def resolve_or_create(
    session: AsyncSession,
    token: str,
    company_id: UUID,
    units: list[Unit],
    *,
    created_by: str | None = None,
    tie_break: str = "first",
) -> tuple[Unit, bool]:
    """Resolve a token against ``units``, creating the unit when nothing matches.

    A created unit is appended to ``units`` so later items in the same run
    match it. If the insert loses a race with another writer, the company's
    units are re-read into ``units`` and the token resolved again.

    Returns:
        (unit, created) tuple
    """
    match = resolve(token, units, tie_break=tie_break)
    if match is not None:
        return match, False

    unit = await insert_unit_if_absent(
        session, company_id, token, derive_abbreviation(token), created_by
    )
    if unit is not None:
        units.append(unit)
        logger.info(f"Created unit {unit.name!r} ({unit.abbreviation}) for company {company_id}")
        return unit, True

    logger.warning(f"Unit {token!r} was created concurrently for company {company_id}; re-reading units")
    units[:] = await load_company_units(session, company_id)
    match = resolve(token, units, tie_break=tie_break)
    if match is None:
        raise UnitConflictError(company_id, token)
    return match, False
