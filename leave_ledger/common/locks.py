"""Per-employee serialisation of balance-mutating operations.

Every path that writes an employee row (application, approval,
cancellation, comp-off credit, deactivation, the accrual step) runs inside
``employee_lock(employee_id)``. The lock serialises callers inside one
process; the ``employees.version`` column catches races across processes.
Callers look the employee up before locking, and a lock is dropped from
the registry once nobody holds or waits on it.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


class EmployeeLockRegistry:
    """``asyncio.Lock`` per employee id, alive only while in use."""

    def __init__(self) -> None:
        self._locks: dict[uuid.UUID, asyncio.Lock] = {}
        self._users: dict[uuid.UUID, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def get(self, employee_id: uuid.UUID) -> Optional[asyncio.Lock]:
        return self._locks.get(employee_id)

    @asynccontextmanager
    async def hold(self, employee_id: uuid.UUID) -> AsyncIterator[None]:
        lock = self._locks.get(employee_id)
        if lock is None:
            lock = self._locks[employee_id] = asyncio.Lock()
        self._users[employee_id] = self._users.get(employee_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._release(employee_id)

    def _release(self, employee_id: uuid.UUID) -> None:
        remaining = self._users.get(employee_id, 1) - 1
        if remaining:
            self._users[employee_id] = remaining
        else:
            self._users.pop(employee_id, None)
            self._locks.pop(employee_id, None)

    def clear(self) -> None:
        self._locks.clear()
        self._users.clear()


registry = EmployeeLockRegistry()


def employee_lock(employee_id: uuid.UUID):
    """Async context manager serialising work on one employee."""
    return registry.hold(employee_id)
