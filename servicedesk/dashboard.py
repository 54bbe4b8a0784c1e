"""Dashboard statistics, recomputed from the tickets table on every call."""

from __future__ import annotations

from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session, noload, selectinload

from servicedesk import models, schemas
from servicedesk.visibility import parse_role, visibility_clause

RECENT_LIMIT = 5

_PERSON_RELATIONS = ("creator", "assignee")

# Relation shown next to each recent ticket, by viewer role
_RECENT_RELATIONS = {
    models.Role.EMPLOYEE: ("assignee",),
    models.Role.IT_STAFF: ("creator",),
    models.Role.IT_MANAGER: ("creator", "assignee"),
}


def status_counts(db: Session, user: models.UserModel) -> schemas.TicketStatistics:
    rows = (
        db.query(models.TicketModel.status, func.count(models.TicketModel.id))
        .filter(visibility_clause(user))
        .group_by(models.TicketModel.status)
        .all()
    )
    by_status: Dict[str, int] = {s: n for s, n in rows}
    return schemas.TicketStatistics(
        total_tickets=sum(by_status.values()),
        pending_tickets=by_status.get(models.TicketStatus.PENDING.value, 0),
        in_progress_tickets=by_status.get(models.TicketStatus.IN_PROGRESS.value, 0),
        finished_tickets=by_status.get(models.TicketStatus.FINISHED.value, 0),
    )


def recent_tickets(db: Session, user: models.UserModel, limit: int = RECENT_LIMIT) -> List[models.TicketModel]:
    """Latest visible tickets with only the viewer's counterpart relation loaded."""
    relations = _RECENT_RELATIONS.get(parse_role(user.role), ())
    options = [
        selectinload(getattr(models.TicketModel, name)) if name in relations else noload(getattr(models.TicketModel, name))
        for name in _PERSON_RELATIONS
    ]
    return (
        db.query(models.TicketModel)
        .filter(visibility_clause(user))
        .options(*options)
        .order_by(models.TicketModel.created_at.desc(), models.TicketModel.id.desc())
        .limit(limit)
        .all()
    )


def manager_counts(db: Session) -> schemas.ManagerStatistics:
    def count_users(role: models.Role) -> int:
        return db.query(models.UserModel).filter(models.UserModel.role == role.value).count()

    priority_rows = (
        db.query(models.TicketModel.priority, func.count(models.TicketModel.id))
        .group_by(models.TicketModel.priority)
        .all()
    )
    by_priority = {p.value: 0 for p in models.Priority}
    for priority, n in priority_rows:
        if priority in by_priority:
            by_priority[priority] = n

    return schemas.ManagerStatistics(
        unassigned_tickets=db.query(models.TicketModel).filter(models.TicketModel.assigned_to.is_(None)).count(),
        total_employees=count_users(models.Role.EMPLOYEE),
        total_it_staff=count_users(models.Role.IT_STAFF),
        tickets_by_priority=by_priority,
    )


def build_dashboard(db: Session, user: models.UserModel) -> schemas.DashboardResponse:
    role = parse_role(user.role)
    return schemas.DashboardResponse(
        statistics=status_counts(db, user),
        recent_tickets=[schemas.TicketResponse.model_validate(t) for t in recent_tickets(db, user)],
        user_role=user.role,
        additional_stats=manager_counts(db) if role is models.Role.IT_MANAGER else None,
    )


__all__ = ["RECENT_LIMIT", "status_counts", "recent_tickets", "manager_counts", "build_dashboard"]
