"""Type definitions for the BOQ unit batch jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID


@dataclass(slots=True)
class BoqRef:
    id: UUID
    number: str


@dataclass
class BatchResult:
    """Outcome of one batch run across all companies."""

    job: str
    companies_scanned: int = 0
    boqs_scanned: int = 0
    items_updated: int = 0
    units_created: int = 0
    anomalies_skipped: int = 0
    updated_boqs: list[BoqRef] = field(default_factory=list)
    dry_run: bool = False
    duration_seconds: float = 0.0

    @property
    def boqs_updated(self) -> int:
        """Number of BOQs written back."""
        return len(self.updated_boqs)

    @property
    def changed(self) -> bool:
        return bool(self.updated_boqs or self.units_created)
