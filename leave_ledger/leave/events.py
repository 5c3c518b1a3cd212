"""Leave events published to notification collaborators.

Hooks are plain async callables registered with :func:`subscribe`. A hook
that raises is logged and skipped; delivery problems never undo a ledger
transition that has already been applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from leave_ledger.common.constants import LeaveAction
from leave_ledger.leave.models import LeaveRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveEvent:
    leave_request: LeaveRequest
    action: LeaveAction


LeaveHook = Callable[[LeaveEvent], Awaitable[None]]

_hooks: list[LeaveHook] = []


def subscribe(hook: LeaveHook) -> LeaveHook:
    """Register ``hook``; usable as a decorator."""
    if hook not in _hooks:
        _hooks.append(hook)
    return hook


def unsubscribe(hook: LeaveHook) -> None:
    if hook in _hooks:
        _hooks.remove(hook)


def clear_hooks() -> None:
    _hooks.clear()


async def publish(leave_request: LeaveRequest, action: LeaveAction) -> None:
    event = LeaveEvent(leave_request=leave_request, action=action)
    for hook in list(_hooks):
        try:
            await hook(event)
        except Exception:
            logger.exception(
                "Leave event hook %r failed for %s %s",
                hook, action.value, leave_request.id,
            )
