"""Batch jobs that migrate, normalize and clean BOQ unit references."""

from boqunits.jobs.cleanup_legacy import LegacyUnitCleanupJob
from boqunits.jobs.migrate_units import UnitMigrationJob
from boqunits.jobs.normalize_units import UnitNormalizationJob
from boqunits.jobs.runner import execute_job
from boqunits.jobs.types import BatchResult, BoqRef

__all__ = [
    "BatchResult",
    "BoqRef",
    "LegacyUnitCleanupJob",
    "UnitMigrationJob",
    "UnitNormalizationJob",
    "execute_job",
]
