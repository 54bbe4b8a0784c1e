"""SQLAlchemy models for the service desk backend.

Models implemented:
- UserModel (employees, IT staff and IT managers)
- TicketModel
- TicketAttachmentModel

Uses SQLAlchemy 2.0 typing (Mapped, mapped_column) and the declarative Base from `servicedesk.database`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from servicedesk.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, PyEnum):
    EMPLOYEE = "employee"
    IT_STAFF = "it_staff"
    IT_MANAGER = "it_manager"


class Priority(str, PyEnum):
    # Stored tokens are kept as-is for compatibility with existing data
    LOW = "Rendah"
    MEDIUM = "Sedang"
    HIGH = "Tinggi"

    @property
    def label(self) -> str:
        return self.name.capitalize()


class TicketStatus(str, PyEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class UserModel(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), index=True, nullable=False, default=Role.EMPLOYEE.value)
    department: Mapped[Optional[str]] = mapped_column(String(255), index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Relationships
    tickets_created: Mapped[List["TicketModel"]] = relationship("TicketModel", back_populates="creator", foreign_keys="TicketModel.created_by")
    tickets_assigned: Mapped[List["TicketModel"]] = relationship("TicketModel", back_populates="assignee", foreign_keys="TicketModel.assigned_to")

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"<User id={self.id} email={self.email} role={self.role}>"


class TicketModel(Base):
    __tablename__ = "tickets"
    __table_args__ = (Index("ix_tickets_status_created_at", "status", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(16), index=True, nullable=False, default=Priority.LOW.value)
    status: Mapped[str] = mapped_column(String(32), index=True, nullable=False, default=TicketStatus.PENDING.value)
    department: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    created_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    assigned_to: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Relationships
    creator: Mapped[UserModel] = relationship("UserModel", back_populates="tickets_created", foreign_keys=[created_by])
    assignee: Mapped[Optional[UserModel]] = relationship("UserModel", back_populates="tickets_assigned", foreign_keys=[assigned_to])
    attachments: Mapped[List["TicketAttachmentModel"]] = relationship(
        "TicketAttachmentModel",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketAttachmentModel.id",
    )

    @property
    def priority_label(self) -> str:
        try:
            return Priority(self.priority).label
        except ValueError:
            return self.priority

    @property
    def status_label(self) -> str:
        try:
            return TicketStatus(self.status).label
        except ValueError:
            return self.status

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} title={self.title} status={self.status}>"


class TicketAttachmentModel(Base):
    __tablename__ = "ticket_attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    ticket_id: Mapped[int] = mapped_column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), index=True, nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    filepath: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    ticket: Mapped[TicketModel] = relationship("TicketModel", back_populates="attachments")

    @property
    def human_file_size(self) -> str:
        size = float(self.file_size)
        units = ["B", "KB", "MB", "GB"]
        i = 0
        while size > 1024 and i < len(units) - 1:
            size /= 1024
            i += 1
        return f"{round(size, 2):g} {units[i]}"

    def __repr__(self) -> str:
        return f"<TicketAttachment id={self.id} ticket_id={self.ticket_id} filename={self.filename}>"


__all__ = [
    "Role",
    "Priority",
    "TicketStatus",
    "UserModel",
    "TicketModel",
    "TicketAttachmentModel",
]
