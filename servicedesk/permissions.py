"""Transition guard: who may create, view, edit, update and delete tickets.

The checks are plain functions over the viewer and the ticket so they can be
exercised without a request. Each returns a `Decision`; routers turn a denial
into a 403 carrying `Decision.message`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from servicedesk.models import Role, TicketStatus
from servicedesk.schemas import TicketUpdate
from servicedesk.visibility import can_view, parse_role

ONLY_EMPLOYEES_CREATE = "Only employees can create tickets."
VIEW_OWN_ONLY = "You can only view your own tickets."
VIEW_ASSIGNED_ONLY = "You can only view tickets assigned to you."
VIEW_DENIED = "You cannot view this ticket."
EDIT_DENIED = "You cannot edit tickets."
EDIT_ASSIGNED_ONLY = "You can only edit tickets assigned to you."
ONLY_MANAGERS_DELETE = "Only IT managers can delete tickets."


@dataclass(frozen=True)
class Decision:
    allowed: bool
    message: Optional[str] = None
    changes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls, changes: Optional[Dict[str, Any]] = None) -> "Decision":
        return cls(True, None, dict(changes or {}))

    @classmethod
    def deny(cls, message: str) -> "Decision":
        return cls(False, message)


def check_create(user) -> Decision:
    """Only employees file tickets; new tickets start pending and unassigned."""
    if parse_role(user.role) is not Role.EMPLOYEE:
        return Decision.deny(ONLY_EMPLOYEES_CREATE)
    return Decision.allow({
        "status": TicketStatus.PENDING.value,
        "assigned_to": None,
        "created_by": user.id,
    })


def check_view(user, ticket) -> Decision:
    if can_view(user, ticket):
        return Decision.allow()
    role = parse_role(user.role)
    if role is Role.EMPLOYEE:
        return Decision.deny(VIEW_OWN_ONLY)
    if role is Role.IT_STAFF:
        return Decision.deny(VIEW_ASSIGNED_ONLY)
    return Decision.deny(VIEW_DENIED)


def check_edit(user, ticket) -> Decision:
    role = parse_role(user.role)
    if role is Role.IT_MANAGER:
        return Decision.allow()
    if role is Role.IT_STAFF:
        if ticket.assigned_to != user.id:
            return Decision.deny(EDIT_ASSIGNED_ONLY)
        return Decision.allow()
    return Decision.deny(EDIT_DENIED)


def check_update(user, ticket, update: TicketUpdate) -> Decision:
    """Authorize an update and reduce it to the fields the viewer may change.

    Staff can only move the status. Managers can also set `assigned_to` when
    the key was sent, including an explicit null to unassign.
    """
    decision = check_edit(user, ticket)
    if not decision.allowed:
        return decision

    changes: Dict[str, Any] = {"status": update.status.value}
    if parse_role(user.role) is Role.IT_MANAGER and "assigned_to" in update.model_fields_set:
        changes["assigned_to"] = update.assigned_to
    return Decision.allow(changes)


def check_delete(user) -> Decision:
    if parse_role(user.role) is not Role.IT_MANAGER:
        return Decision.deny(ONLY_MANAGERS_DELETE)
    return Decision.allow()


__all__ = [
    "Decision",
    "check_create",
    "check_view",
    "check_edit",
    "check_update",
    "check_delete",
]
