"""Common module — shared utilities for the leave ledger."""

from leave_ledger.common.audit import AuditTrail, create_audit_entry
from leave_ledger.common.constants import (
    BalanceBucket,
    EmploymentType,
    LeaveStatus,
    LeaveType,
    UserRole,
)
from leave_ledger.common.exceptions import (
    AppException,
    ConcurrencyConflict,
    ConflictError,
    LeaveValidationError,
    NotFoundException,
    StateError,
    ValidationException,
    register_exception_handlers,
)
from leave_ledger.common.locks import employee_lock
from leave_ledger.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Enums
    "BalanceBucket",
    "EmploymentType",
    "LeaveStatus",
    "LeaveType",
    "UserRole",
    # Exceptions
    "AppException",
    "ConcurrencyConflict",
    "ConflictError",
    "LeaveValidationError",
    "NotFoundException",
    "StateError",
    "ValidationException",
    "register_exception_handlers",
    # Locks
    "employee_lock",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
