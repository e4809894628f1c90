"""Seed a sample company and BOQ carrying a legacy free-text unit."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boqunits.db.models import BoqModel, CompanyModel

SAMPLE_NUMBER = "BOQ-SAMPLE-001"


def sample_document(number: str = SAMPLE_NUMBER) -> dict:
    return {
        "number": number,
        "date": date.today().isoformat(),
        "client": {
            "name": "Sample Client",
            "email": "client@example.com",
            "phone": "+254700000000",
            "address": "Nairobi, Kenya",
        },
        "contractor": "Sample Contractor",
        "project_title": "Sample Project",
        "sections": [
            {
                "title": "General Works",
                "items": [
                    {"description": "Excavation", "quantity": 10, "unit": "m3", "rate": 1500}
                ],
            }
        ],
        "notes": "This is a seeded sample BOQ.",
    }


async def seed_sample(session: AsyncSession, company_name: str = "Sample Company") -> tuple[BoqModel, bool]:
    """Create the sample BOQ once, under the first company (created if none).

    Returns:
        (boq, created) tuple
    """
    company = (
        await session.execute(select(CompanyModel).order_by(CompanyModel.created_at).limit(1))
    ).scalar_one_or_none()
    if company is None:
        company = CompanyModel(name=company_name)
        session.add(company)
        await session.flush()

    existing = (
        await session.execute(
            select(BoqModel).where(
                BoqModel.company_id == company.id,
                BoqModel.number == SAMPLE_NUMBER,
            )
        )
    ).scalar_one_or_none()
    if existing is not None:
        return existing, False

    data = sample_document()
    boq = BoqModel(
        company_id=company.id,
        number=SAMPLE_NUMBER,
        boq_date=date.today(),
        client_name=data["client"]["name"],
        client_email=data["client"]["email"],
        client_phone=data["client"]["phone"],
        client_address=data["client"]["address"],
        contractor=data["contractor"],
        project_title=data["project_title"],
        currency="KES",
        subtotal=Decimal("15000.00"),
        tax_amount=Decimal("0.00"),
        total_amount=Decimal("15000.00"),
        data=data,
    )
    session.add(boq)
    await session.flush()
    return boq, True
