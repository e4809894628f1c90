"""Tests for BOQ row flattening and PDF rendering."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from boqunits.db.models import BoqModel
from boqunits.reporting.pdf_export import generate_boq_pdf
from boqunits.reporting.viewer import boq_rows, subtotal


def _document(cubic_meters):
    return {
        "sections": [
            {
                "title": "General Works",
                "items": [
                    {"description": "Excavation", "quantity": 10, "rate": 1500, "unit_id": str(cubic_meters.id)},
                    {"description": "Hardcore", "quantity": 2, "rate": 800, "unit": "Tonnes"},
                    {"description": "Site clearance", "rate": 5000, "unit_id": str(uuid4())},
                ],
            },
            {"title": None, "items": [{"description": "Contingency", "amount": 1000}]},
        ]
    }


def test_boq_rows_mix_section_and_item_rows(cubic_meters):
    rows = boq_rows(_document(cubic_meters), [cubic_meters])

    assert [row.is_section for row in rows] == [True, False, False, False, False]
    assert rows[0].description == "General Works"
    assert [row.unit for row in rows[1:]] == ["m³", "Tonnes", "-", "-"]
    assert rows[1].amount == Decimal("15000")
    assert rows[3].quantity == Decimal("1")
    assert rows[3].amount == Decimal("5000")
    assert subtotal(rows) == Decimal("22600")


def test_boq_rows_tolerates_malformed_documents():
    assert boq_rows(None) == []
    assert boq_rows({"sections": [{"title": "Empty", "items": "nope"}]})[0].is_section


def test_generate_boq_pdf(cubic_meters):
    boq = BoqModel(
        number="BOQ-001",
        client_name="Sample Client <Ltd>",
        project_title="Warehouse & Yard",
        currency="KES",
        data=_document(cubic_meters),
    )

    buffer = generate_boq_pdf(boq, [cubic_meters])

    content = buffer.getvalue()
    assert content.startswith(b"%PDF")
    assert len(content) > 1000
