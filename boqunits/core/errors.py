"""Exceptions raised by the unit registry and the BOQ batch jobs."""

from __future__ import annotations


class UnitConflictError(Exception):
    """A unit name collided with an existing ``(company_id, name)`` row."""

    def __init__(self, company_id, name: str):
        super().__init__(f"Unit {name!r} already exists for company {company_id}")
        self.company_id = company_id
        self.name = name


class BatchJobError(RuntimeError):
    """A batch run failed and its transaction was rolled back."""

    def __init__(self, job: str, boqs_touched: int, cause: BaseException):
        super().__init__(
            f"{job} failed after touching {boqs_touched} BOQ(s); "
            f"all changes rolled back: {cause}"
        )
        self.job = job
        self.boqs_touched = boqs_touched
