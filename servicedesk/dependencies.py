"""Common FastAPI dependency helpers for permissions and DB access.

Provides:
- get_ticket_or_404
- require_manager
- ensure (raises 403 for a denied `Decision`)
"""

from __future__ import annotations

import logging

from fastapi import Depends, status
from sqlalchemy.orm import Session

from servicedesk import models
from servicedesk.auth import get_current_user
from servicedesk.database import get_db
from servicedesk.errors import api_error, forbidden
from servicedesk.permissions import Decision
from servicedesk.visibility import parse_role

logger = logging.getLogger(__name__)


def get_ticket_or_404(ticket_id: int, db: Session = Depends(get_db)) -> models.TicketModel:
    ticket = db.get(models.TicketModel, ticket_id)
    if not ticket:
        raise api_error(status.HTTP_404_NOT_FOUND, "ticket_not_found", "Ticket not found")
    return ticket


def require_manager(current_user: models.UserModel = Depends(get_current_user)) -> models.UserModel:
    """Dependency that ensures the current user is an IT manager.

    Raises HTTP 403 otherwise.
    """
    if parse_role(current_user.role) is not models.Role.IT_MANAGER:
        logger.debug("require_manager: denied for user=%s", current_user.id)
        raise forbidden("IT manager access required")
    return current_user


def ensure(decision: Decision, current_user: models.UserModel) -> Decision:
    """Return `decision` if it allows the action, otherwise raise 403."""
    if not decision.allowed:
        logger.info("Denied user=%s role=%s: %s", current_user.id, current_user.role, decision.message)
        raise forbidden(decision.message or "Forbidden")
    return decision


__all__ = [
    "get_ticket_or_404",
    "require_manager",
    "ensure",
]
