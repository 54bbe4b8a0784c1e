"""Role-based row visibility for tickets.

Each role maps to one scope holding the same rule in two forms: an SQL clause
used to filter queries and an in-memory check for an already loaded ticket.
List, detail, edit, dashboard and attachment download all go through here.

Roles without a scope see nothing.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, NamedTuple, Optional

from sqlalchemy import false, true
from sqlalchemy.orm import Query, Session
from sqlalchemy.sql.elements import ColumnElement

from servicedesk.models import Role, TicketModel

logger = logging.getLogger(__name__)


class Scope(NamedTuple):
    clause: Callable[[int], ColumnElement]
    matches: Callable[[int, TicketModel], bool]


SCOPES: Dict[Role, Scope] = {
    Role.EMPLOYEE: Scope(
        clause=lambda user_id: TicketModel.created_by == user_id,
        matches=lambda user_id, ticket: ticket.created_by == user_id,
    ),
    Role.IT_STAFF: Scope(
        clause=lambda user_id: TicketModel.assigned_to == user_id,
        matches=lambda user_id, ticket: ticket.assigned_to == user_id,
    ),
    Role.IT_MANAGER: Scope(
        clause=lambda user_id: true(),
        matches=lambda user_id, ticket: True,
    ),
}


def parse_role(value) -> Optional[Role]:
    """Return the `Role` for a stored role string, or None if unrecognized."""
    try:
        return Role(value)
    except ValueError:
        return None


def scope_for(user) -> Optional[Scope]:
    role = parse_role(user.role)
    if role is None:
        logger.warning("No ticket scope for role=%r (user=%s); denying all", user.role, user.id)
        return None
    return SCOPES[role]


def visibility_clause(user) -> ColumnElement:
    scope = scope_for(user)
    if scope is None:
        return false()
    return scope.clause(user.id)


def can_view(user, ticket: TicketModel) -> bool:
    scope = scope_for(user)
    if scope is None:
        return False
    return scope.matches(user.id, ticket)


def visible_tickets(db: Session, user) -> Query:
    """Base ticket query restricted to the rows `user` may see."""
    return db.query(TicketModel).filter(visibility_clause(user))


__all__ = ["Scope", "SCOPES", "parse_role", "scope_for", "visibility_clause", "can_view", "visible_tickets"]
