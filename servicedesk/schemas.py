"""Pydantic schemas for the service desk API.

Request models carry the field-level validation rules; response models are
built from ORM objects (`from_attributes`).
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from servicedesk.models import Priority, Role, TicketStatus


# ----------------------------- Users ---------------------------------
class UserSummary(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: str
    department: Optional[str] = None

    model_config = {"from_attributes": True}


class UserResponse(UserSummary):
    created_at: datetime


# ----------------------------- Auth ----------------------------------
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ----------------------------- Tickets -------------------------------
class TicketCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: Priority
    department: str = Field(..., min_length=1, max_length=255)

    # Whitespace-only input counts as missing
    model_config = {"str_strip_whitespace": True}


TICKET_CREATE_FIELDS = ("title", "description", "priority", "department")

_REQUIRED_MESSAGES = {
    "title": "Ticket title is required.",
    "description": "Problem description is required.",
    "priority": "Priority level is required.",
    "department": "Department is required.",
}

# (field, pydantic error type) -> message shown to the client
TICKET_CREATE_MESSAGES = {
    **{(field, "missing"): msg for field, msg in _REQUIRED_MESSAGES.items()},
    **{(field, "string_too_short"): msg for field, msg in _REQUIRED_MESSAGES.items()},
    ("title", "string_type"): "Ticket title must be text.",
    ("description", "string_type"): "Problem description must be text.",
    ("department", "string_type"): "Department must be text.",
    ("title", "string_too_long"): "Ticket title must not exceed 255 characters.",
    ("department", "string_too_long"): "Department must not exceed 255 characters.",
    ("priority", "enum"): "Priority must be one of: " + ", ".join(p.value for p in Priority) + ".",
}


class TicketUpdate(BaseModel):
    status: TicketStatus
    assigned_to: Optional[int] = None


class AttachmentResponse(BaseModel):
    id: int
    ticket_id: int
    filename: str
    filepath: str
    mime_type: str
    file_size: int
    human_file_size: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TicketResponse(BaseModel):
    id: int
    title: str
    description: str
    priority: Priority
    priority_label: str
    status: TicketStatus
    status_label: str
    department: str
    created_by: int
    assigned_to: Optional[int]
    created_at: datetime
    updated_at: datetime
    creator: Optional[UserSummary] = None
    assignee: Optional[UserSummary] = None

    model_config = {"from_attributes": True}


class TicketDetail(TicketResponse):
    attachments: List[AttachmentResponse] = []


class TicketPage(BaseModel):
    data: List[TicketResponse]
    pagination: Dict[str, int]


class TicketView(BaseModel):
    """Ticket detail plus what a client needs to render actions on it."""

    ticket: TicketDetail
    user_role: str
    it_staff: List[UserSummary] = []


class TicketEditForm(BaseModel):
    ticket: TicketResponse
    user_role: str
    statuses: List[TicketStatus]
    it_staff: List[UserSummary] = []


class TicketCreateForm(BaseModel):
    user_department: Optional[str]
    priorities: List[Priority]
    max_attachments: int
    max_attachment_size: int
    allowed_extensions: List[str]


# ---------------------------- Dashboard ------------------------------
class TicketStatistics(BaseModel):
    total_tickets: int
    pending_tickets: int
    in_progress_tickets: int
    finished_tickets: int


class ManagerStatistics(BaseModel):
    unassigned_tickets: int
    total_employees: int
    total_it_staff: int
    tickets_by_priority: Dict[str, int]


class DashboardResponse(BaseModel):
    statistics: TicketStatistics
    recent_tickets: List[TicketResponse]
    user_role: str
    additional_stats: Optional[ManagerStatistics] = None


__all__ = [
    "Role",
    "UserSummary",
    "UserResponse",
    "LoginRequest",
    "TokenResponse",
    "TicketCreate",
    "TICKET_CREATE_FIELDS",
    "TICKET_CREATE_MESSAGES",
    "TicketUpdate",
    "AttachmentResponse",
    "TicketResponse",
    "TicketDetail",
    "TicketPage",
    "TicketView",
    "TicketEditForm",
    "TicketCreateForm",
    "TicketStatistics",
    "ManagerStatistics",
    "DashboardResponse",
]
