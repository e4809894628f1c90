"""Integration tests for the free-text unit migration job."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from boqunits.db.models import UnitModel
from boqunits.jobs import LegacyUnitCleanupJob, UnitMigrationJob, UnitNormalizationJob
from boqunits.units.registry import load_company_units


def _items(boq) -> list[dict]:
    return [item for section in boq.data["sections"] for item in section["items"]]


async def _unit_count(session, company_id=None) -> int:
    stmt = select(func.count()).select_from(UnitModel)
    if company_id is not None:
        stmt = stmt.where(UnitModel.company_id == company_id)
    return (await session.execute(stmt)).scalar_one()


@pytest.mark.asyncio
async def test_excavation_item_end_to_end(db_session, make_company, make_boq, doc, sec):
    """Legacy item is migrated, left alone by normalization, then cleaned."""
    company = await make_company()
    boq = await make_boq(
        company,
        "BOQ-001",
        doc(sec({"description": "Excavation", "quantity": 10, "rate": 1500, "unit": "m3"})),
    )

    result = await UnitMigrationJob().run(db_session)

    assert result.units_created == 1
    assert result.items_updated == 1
    assert [ref.number for ref in result.updated_boqs] == ["BOQ-001"]

    units = await load_company_units(db_session, company.id)
    assert [(u.name, u.abbreviation) for u in units] == [("m3", "m3")]

    item = _items(boq)[0]
    assert item["unit_id"] == str(units[0].id)
    assert item["unit_name"] == "m3"
    assert item["unit_abbreviation"] == "m3"
    assert item["unit"] == "m3"

    normalized = await UnitNormalizationJob().run(db_session)
    assert normalized.items_updated == 0
    assert not normalized.changed

    cleaned = await LegacyUnitCleanupJob().run(db_session)
    assert cleaned.items_updated == 1
    item = _items(boq)[0]
    assert "unit" not in item
    assert "unit_name" not in item
    assert item["unit_abbreviation"] == "m3"
    assert item["quantity"] == 10
    assert item["rate"] == 1500


@pytest.mark.asyncio
async def test_rerun_is_idempotent(db_session, make_company, make_boq, doc, sec):
    company = await make_company()
    await make_boq(
        company,
        "BOQ-001",
        doc(sec({"description": "Walling", "unit": "Square Meters"}, {"description": "Prelims"})),
    )

    first = await UnitMigrationJob().run(db_session)
    second = await UnitMigrationJob().run(db_session)

    assert first.units_created == 1
    assert first.items_updated == 1
    assert second.units_created == 0
    assert second.items_updated == 0
    assert second.updated_boqs == []
    assert await _unit_count(db_session, company.id) == 1


@pytest.mark.asyncio
async def test_long_token_gets_derived_abbreviation(db_session, make_company, make_boq, doc, sec):
    company = await make_company()
    boq = await make_boq(company, "BOQ-001", doc(sec({"description": "Tiling", "unit": "Square Meters"})))

    await UnitMigrationJob().run(db_session)

    item = _items(boq)[0]
    assert item["unit_name"] == "Square Meters"
    assert item["unit_abbreviation"] == "SQU"


@pytest.mark.asyncio
async def test_unit_name_wins_over_unit(db_session, make_company, make_unit, make_boq, doc, sec):
    company = await make_company()
    cubic = await make_unit(company, "Cubic Meters", "m³")
    boq = await make_boq(
        company,
        "BOQ-001",
        doc(sec({"description": "Concrete", "unit_name": "cubic meters", "unit": "tonnes"})),
    )

    result = await UnitMigrationJob().run(db_session)

    assert result.units_created == 0
    item = _items(boq)[0]
    assert item["unit_id"] == str(cubic.id)
    assert item["unit_name"] == "Cubic Meters"
    assert item["unit_abbreviation"] == "m³"


@pytest.mark.asyncio
async def test_matches_existing_abbreviation(db_session, make_company, make_unit, make_boq, doc, sec):
    company = await make_company()
    kilo = await make_unit(company, "Kilograms", "KG")
    boq = await make_boq(company, "BOQ-001", doc(sec({"description": "Rebar", "unit": "kg"})))

    result = await UnitMigrationJob().run(db_session)

    assert result.units_created == 0
    assert _items(boq)[0]["unit_id"] == str(kilo.id)


@pytest.mark.asyncio
async def test_created_unit_is_reused_within_the_run(db_session, make_company, make_boq, doc, sec):
    company = await make_company()
    first = await make_boq(company, "BOQ-001", doc(sec({"description": "A", "unit": "Bags"})))
    second = await make_boq(
        company,
        "BOQ-002",
        doc(sec({"description": "B", "unit": "BAGS"}), sec({"description": "C", "unit": "bags"}, title="Extra")),
    )

    result = await UnitMigrationJob().run(db_session)

    assert result.units_created == 1
    assert result.items_updated == 3
    assert await _unit_count(db_session, company.id) == 1
    unit_ids = {item["unit_id"] for boq in (first, second) for item in _items(boq)}
    assert len(unit_ids) == 1


@pytest.mark.asyncio
async def test_units_are_scoped_per_company(db_session, make_company, make_unit, make_boq, doc, sec):
    acme = await make_company("Acme")
    other = await make_company("Other")
    foreign = await make_unit(other, "m3", "m³")
    boq = await make_boq(acme, "BOQ-001", doc(sec({"description": "Fill", "unit": "m3"})))

    result = await UnitMigrationJob().run(db_session)

    assert result.units_created == 1
    assert result.companies_scanned == 2
    item = _items(boq)[0]
    assert item["unit_id"] != str(foreign.id)
    acme_units = await load_company_units(db_session, acme.id)
    assert item["unit_id"] == str(acme_units[0].id)


@pytest.mark.asyncio
async def test_already_migrated_items_are_untouched(db_session, make_company, make_boq, doc, sec):
    company = await make_company()
    item = {"description": "Piling", "unit_id": "not-a-real-id", "unit": "m"}
    await make_boq(company, "BOQ-001", doc(sec(item)))

    result = await UnitMigrationJob().run(db_session)

    assert result.items_updated == 0
    assert await _unit_count(db_session) == 0


@pytest.mark.asyncio
async def test_malformed_documents_are_skipped(db_session, make_company, make_boq, doc, sec):
    company = await make_company()
    await make_boq(company, "BOQ-BAD-1", None)
    await make_boq(company, "BOQ-BAD-2", {"sections": "corrupted"})
    odd = await make_boq(
        company,
        "BOQ-ODD",
        {"sections": [{"title": "No items"}, "junk", {"items": [{"description": "Wall", "unit": "m2"}]}]},
    )

    result = await UnitMigrationJob().run(db_session)

    assert result.boqs_scanned == 3
    assert result.anomalies_skipped == 2
    assert result.items_updated == 1
    assert odd.data["sections"][2]["items"][0]["unit_name"] == "m2"
    assert odd.data["sections"][1] == "junk"


@pytest.mark.asyncio
async def test_boqs_without_company_are_not_migrated(db_session, make_boq, doc, sec):
    orphan = await make_boq(None, "BOQ-ORPHAN", doc(sec({"description": "Fill", "unit": "m3"})))

    result = await UnitMigrationJob().run(db_session)

    assert result.boqs_scanned == 0
    assert "unit_id" not in _items(orphan)[0]


@pytest.mark.asyncio
async def test_cleanup_reaches_boqs_without_company(db_session, make_company, make_boq, doc, sec):
    await make_company()
    orphan = await make_boq(
        None,
        "BOQ-ORPHAN",
        doc(sec({"description": "Fill", "unit_id": "u1", "unit_abbreviation": "m3", "unit": "m3", "unit_name": "m3"})),
    )

    result = await LegacyUnitCleanupJob().run(db_session)

    item = _items(orphan)[0]
    assert result.items_updated == 1
    assert [ref.number for ref in result.updated_boqs] == ["BOQ-ORPHAN"]
    assert "unit" not in item
    assert "unit_name" not in item
    assert item["unit_abbreviation"] == "m3"


@pytest.mark.asyncio
async def test_changes_are_persisted(db_session, make_company, make_boq, doc, sec):
    company = await make_company()
    boq = await make_boq(company, "BOQ-001", doc(sec({"description": "Fill", "unit": "m3"})))

    await UnitMigrationJob(created_by="ops").run(db_session)
    await db_session.commit()
    await db_session.refresh(boq)

    assert _items(boq)[0]["unit_abbreviation"] == "m3"
    created_by = (await db_session.execute(select(UnitModel.created_by))).scalar_one()
    assert created_by == "ops"
