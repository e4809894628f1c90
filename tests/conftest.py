"""Pytest configuration and fixtures for boqunits tests.

Provides an in-memory SQLite database and builders for companies, units and BOQs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from boqunits import config as config_module
from boqunits.db.models import Base, BoqModel, CompanyModel, UnitModel
from boqunits.models import Unit


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables and reset the config singleton."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setattr(config_module, "_config", None)


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(db_engine) -> AsyncSession:
    """Create in-memory database for testing."""
    SessionLocal = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def make_company(db_session: AsyncSession):
    async def _make(name: str = "Acme Construction") -> CompanyModel:
        company = CompanyModel(name=name)
        db_session.add(company)
        await db_session.flush()
        return company

    return _make


@pytest.fixture
def make_unit(db_session: AsyncSession):
    async def _make(company: CompanyModel, name: str, abbreviation: str | None = None) -> UnitModel:
        unit = UnitModel(company_id=company.id, name=name, abbreviation=abbreviation)
        db_session.add(unit)
        await db_session.flush()
        return unit

    return _make


@pytest.fixture
def make_boq(db_session: AsyncSession):
    async def _make(company: CompanyModel | None, number: str, data) -> BoqModel:
        boq = BoqModel(
            company_id=company.id if company else None,
            number=number,
            client_name="Sample Client",
            currency="KES",
            total_amount=Decimal("0"),
            data=data,
        )
        db_session.add(boq)
        await db_session.flush()
        return boq

    return _make


def section(*items, title: str | None = "General Works") -> dict:
    return {"title": title, "items": list(items)}


@pytest.fixture
def doc():
    """Build a BOQ document from sections."""

    def _doc(*sections) -> dict:
        return {"sections": list(sections)}

    return _doc


@pytest.fixture
def sec():
    return section


@pytest.fixture
def company_id():
    return uuid4()


@pytest.fixture
def cubic_meters(company_id) -> Unit:
    return Unit(
        company_id=company_id,
        name="m3",
        abbreviation="m³",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def kilograms(company_id) -> Unit:
    return Unit(
        company_id=company_id,
        name="kg",
        created_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )
