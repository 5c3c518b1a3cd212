"""Employee registry — Employee and LOP history models, schemas and services."""

from leave_ledger.employees.models import Employee, LOPHistoryEntry

__all__ = ["Employee", "LOPHistoryEntry"]
