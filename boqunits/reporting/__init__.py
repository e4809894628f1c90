"""Read-only reporting over BOQ unit data: audit, CSV export, viewer and PDF."""

from boqunits.reporting.audit import AuditReport, audit_units
from boqunits.reporting.csv_export import export_units_csv, write_units_csv
from boqunits.reporting.viewer import boq_rows

__all__ = ["AuditReport", "audit_units", "boq_rows", "export_units_csv", "write_units_csv"]
