"""Seed utilities for creating demo data.

Contains `seed_database`, reused by the `/api/seed` route and runnable as
`python -m servicedesk.seed`.
"""
from __future__ import annotations

import argparse
import logging
from itertools import cycle
from typing import List

from sqlalchemy.orm import Session

from servicedesk import models
from servicedesk.auth import get_password_hash

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password"

DEMO_ACCOUNTS = [
    ("IT Manager", "manager@servicedesk.com", models.Role.IT_MANAGER, "IT"),
    ("John Smith", "john@servicedesk.com", models.Role.IT_STAFF, "IT"),
    ("Sarah Johnson", "sarah@servicedesk.com", models.Role.IT_STAFF, "IT"),
    ("Test Employee", "employee@servicedesk.com", models.Role.EMPLOYEE, "HR"),
    ("Rina Putri", "rina@servicedesk.com", models.Role.EMPLOYEE, "Finance"),
    ("Budi Santoso", "budi@servicedesk.com", models.Role.EMPLOYEE, "Marketing"),
    ("Dewi Lestari", "dewi@servicedesk.com", models.Role.EMPLOYEE, "Operations"),
]

ISSUES = [
    ("Laptop will not boot", "The laptop shows a black screen after the logo."),
    ("Printer offline", "The shared printer on floor 2 is reported offline."),
    ("VPN keeps disconnecting", "VPN drops every few minutes when working from home."),
    ("Email not syncing", "Outlook stopped receiving new mail since this morning."),
    ("Request software install", "Need the accounting package installed on my workstation."),
    ("Password reset", "Locked out of the HR portal after several attempts."),
    ("Monitor flickering", "External monitor flickers when connected through the dock."),
    ("Slow network drive", "Opening files on the shared drive takes minutes."),
]


def _tickets(count: int, creators: List[models.UserModel], assignees: List[models.UserModel], status: models.TicketStatus, priorities: List[models.Priority], issues) -> List[models.TicketModel]:
    creator_cycle = cycle(creators)
    assignee_cycle = cycle(assignees) if assignees else None
    priority_cycle = cycle(priorities)
    tickets = []
    for _ in range(count):
        title, description = next(issues)
        creator = next(creator_cycle)
        tickets.append(
            models.TicketModel(
                title=title,
                description=description,
                priority=next(priority_cycle).value,
                status=status.value,
                department=creator.department or "General",
                created_by=creator.id,
                assigned_to=next(assignee_cycle).id if assignee_cycle else None,
            )
        )
    return tickets


def seed_database(db: Session) -> dict:
    """Create demo data if the users table is empty. Returns a dict describing counts created.

    This function is idempotent: a database that already has users is left untouched.
    """
    created = {"users": 0, "tickets": 0}

    if db.query(models.UserModel).count() > 0:
        logger.info("Seed skipped: users already present")
        return {"message": "Seed skipped", "data": created}

    hashed = get_password_hash(DEMO_PASSWORD)
    users = [
        models.UserModel(name=name, email=email, hashed_password=hashed, role=role.value, department=department)
        for name, email, role, department in DEMO_ACCOUNTS
    ]
    db.add_all(users)
    db.flush()
    created["users"] = len(users)

    employees = [u for u in users if u.role == models.Role.EMPLOYEE.value]
    staff = [u for u in users if u.role == models.Role.IT_STAFF.value]
    test_employee = employees[0]
    all_priorities = list(models.Priority)
    issues = cycle(ISSUES)

    tickets: List[models.TicketModel] = []
    tickets += _tickets(8, employees, [], models.TicketStatus.PENDING, all_priorities, issues)
    tickets += _tickets(12, employees, staff, models.TicketStatus.IN_PROGRESS, all_priorities, issues)
    tickets += _tickets(20, employees, staff, models.TicketStatus.FINISHED, all_priorities, issues)
    tickets += _tickets(5, employees, [], models.TicketStatus.PENDING, [models.Priority.HIGH], issues)
    tickets += _tickets(3, [test_employee], [], models.TicketStatus.PENDING, all_priorities, issues)
    tickets += _tickets(2, [test_employee], staff[:1], models.TicketStatus.IN_PROGRESS, all_priorities, issues)
    tickets += _tickets(4, [test_employee], staff, models.TicketStatus.FINISHED, all_priorities, issues)
    db.add_all(tickets)
    created["tickets"] = len(tickets)

    db.commit()
    logger.info("Seed completed: %s", created)
    return {"message": "Seed completed", "data": created}


def main() -> None:
    from servicedesk.config import LOG_LEVEL
    from servicedesk.database import SessionLocal, init_db

    parser = argparse.ArgumentParser(description="Create demo service desk accounts and tickets")
    parser.parse_args()
    logging.basicConfig(level=LOG_LEVEL)

    init_db()
    with SessionLocal() as db:
        result = seed_database(db)
    print(result["message"], result["data"])
    if result["data"]["users"]:
        print(f"Demo accounts use the password '{DEMO_PASSWORD}':")
        for name, email, role, _ in DEMO_ACCOUNTS:
            print(f"- {role.value}: {email} ({name})")


if __name__ == "__main__":
    main()
