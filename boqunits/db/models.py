"""SQLAlchemy async database models for boqunits.

Maps to the PostgreSQL tables shared with the business application. Only the
columns the unit tooling reads or writes are modelled in detail.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class CompanyModel(Base):
    """Tenant. Every unit and BOQ belongs to exactly one company."""

    __tablename__ = "companies"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class UnitModel(Base):
    """Canonical measurement unit, scoped to a company."""

    __tablename__ = "units"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    abbreviation: Mapped[str | None] = mapped_column(Text)

    # Audit
    created_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("company_id", "name", name="uq_units_company_name"),
        Index("idx_units_company_id", "company_id"),
        Index("idx_units_name", "name"),
    )


class BoqModel(Base):
    """Bill of Quantities with its sections/items document in ``data``."""

    __tablename__ = "boqs"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE")
    )
    number: Mapped[str] = mapped_column(String(100), nullable=False)
    boq_date: Mapped[date] = mapped_column(Date, nullable=False, server_default=func.current_date())

    # Client snapshot
    client_name: Mapped[str] = mapped_column(Text, nullable=False)
    client_email: Mapped[str | None] = mapped_column(Text)
    client_phone: Mapped[str | None] = mapped_column(Text)
    client_address: Mapped[str | None] = mapped_column(Text)
    client_city: Mapped[str | None] = mapped_column(Text)
    client_country: Mapped[str | None] = mapped_column(Text)
    contractor: Mapped[str | None] = mapped_column(Text)
    project_title: Mapped[str | None] = mapped_column(Text)

    # Totals
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="KES")
    subtotal: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)

    # Full structured BOQ (sections/items/notes)
    data: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB(), "postgresql"))

    created_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("company_id", "number", name="uq_boqs_company_number"),
        Index("idx_boqs_company_id", "company_id"),
        Index("idx_boqs_number", "number"),
    )
