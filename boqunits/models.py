"""boqunits Pydantic models for type-safe data validation."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator


class UnitState(str, Enum):
    """Which generation of unit reference a BOQ item carries."""

    NORMALIZED = "normalized"  # unit_id + unit_abbreviation
    CANONICAL = "canonical"  # unit_id, abbreviation not cached yet
    NAMED = "named"  # unit_name only
    LEGACY = "legacy"  # free-text unit only
    NONE = "none"  # lump-sum item, no unit at all


class Unit(BaseModel):
    """Canonical measurement unit owned by one company."""

    id: UUID = Field(default_factory=uuid4)
    company_id: UUID
    name: str
    abbreviation: str | None = None
    created_at: datetime | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError("unit name must not be empty")
        return v

    @property
    def display(self) -> str:
        """Abbreviation if set, otherwise the name."""
        return self.abbreviation or self.name

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "company_id": "5d1c8a0e-8f0e-4a8e-9a55-0d3c1f0b6a11",
                "name": "Cubic Meters",
                "abbreviation": "m³",
            }
        }


class BoqRow(BaseModel):
    """Flattened row for the BOQ viewer and PDF renderer."""

    description: str
    quantity: Decimal = Decimal("0")
    unit: str = ""
    rate: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    is_section: bool = False
