"""Ticket routes: role-scoped listing, creation with attachments, status and
assignment updates, and manager-only deletion."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from fastapi.responses import FileResponse, JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session, selectinload

from servicedesk import models, schemas
from servicedesk.attachments import (
    ALLOWED_EXTENSIONS,
    MAX_ATTACHMENT_SIZE,
    MAX_ATTACHMENTS,
    PendingUpload,
    attach_files,
    discard_files,
    purge_files,
    read_uploads,
    validate_uploads,
)
from servicedesk.auth import get_current_user
from servicedesk.database import get_db
from servicedesk.dependencies import ensure, get_ticket_or_404
from servicedesk.errors import api_error, field_errors, make_validation_error_response
from servicedesk.permissions import check_create, check_delete, check_edit, check_update, check_view
from servicedesk.storage import AttachmentStorage, get_storage
from servicedesk.visibility import parse_role, visible_tickets

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])

PAGE_SIZE = 10


def _it_staff_for(db: Session, current_user: models.UserModel) -> List[schemas.UserSummary]:
    """IT staff a manager can assign to; empty for everyone else."""
    if parse_role(current_user.role) is not models.Role.IT_MANAGER:
        return []
    staff = (
        db.query(models.UserModel)
        .filter(models.UserModel.role == models.Role.IT_STAFF.value)
        .order_by(models.UserModel.name)
        .all()
    )
    return [schemas.UserSummary.model_validate(u) for u in staff]


def _validation_error(errors: list) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=make_validation_error_response(errors))


@router.get("", response_model=schemas.TicketPage)
async def list_tickets(page: int = Query(1, ge=1), current_user: models.UserModel = Depends(get_current_user), db: Session = Depends(get_db)) -> schemas.TicketPage:
    """List the tickets the current user may see, newest first, 10 per page."""
    q = visible_tickets(db, current_user)

    total = q.count()
    offset = (page - 1) * PAGE_SIZE

    tickets = (
        q.options(selectinload(models.TicketModel.creator), selectinload(models.TicketModel.assignee))
        .order_by(models.TicketModel.created_at.desc(), models.TicketModel.id.desc())
        .offset(offset)
        .limit(PAGE_SIZE)
        .all()
    )

    return schemas.TicketPage(
        data=[schemas.TicketResponse.model_validate(t) for t in tickets],
        pagination={
            "page": page,
            "limit": PAGE_SIZE,
            "total": total,
            "totalPages": (total + PAGE_SIZE - 1) // PAGE_SIZE,
        },
    )


@router.get("/create", response_model=schemas.TicketCreateForm)
async def create_form(current_user: models.UserModel = Depends(get_current_user)) -> schemas.TicketCreateForm:
    """Metadata for the ticket creation form (employees only)."""
    ensure(check_create(current_user), current_user)
    return schemas.TicketCreateForm(
        user_department=current_user.department,
        priorities=list(models.Priority),
        max_attachments=MAX_ATTACHMENTS,
        max_attachment_size=MAX_ATTACHMENT_SIZE,
        allowed_extensions=list(ALLOWED_EXTENSIONS),
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=schemas.TicketDetail)
async def create_ticket(request: Request, current_user: models.UserModel = Depends(get_current_user), db: Session = Depends(get_db), storage: AttachmentStorage = Depends(get_storage)):
    """Create a ticket. Accepts a JSON body, or multipart/form-data with up to
    five files under `attachments`.

    Status, assignee and creator are never taken from the request. Any invalid
    field or file rejects the whole submission.
    """
    decision = ensure(check_create(current_user), current_user)

    form_data: dict = {}
    uploads: List[PendingUpload] = []
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data") or content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        form_data = {k: v for k, v in form.items() if k != "attachments"}
        uploads = await read_uploads(form.getlist("attachments"))
    elif content_type.startswith("application/json"):
        try:
            form_data = await request.json()
        except ValueError:
            raise api_error(status.HTTP_400_BAD_REQUEST, "invalid_payload", "Malformed JSON body")
        if not isinstance(form_data, dict):
            raise api_error(status.HTTP_400_BAD_REQUEST, "invalid_payload", "Ticket payload must be an object")

    errors: list = []
    payload = None
    try:
        payload = schemas.TicketCreate.model_validate({k: form_data[k] for k in schemas.TICKET_CREATE_FIELDS if k in form_data})
    except ValidationError as exc:
        errors.extend(field_errors(exc, schemas.TICKET_CREATE_MESSAGES))
    errors.extend(validate_uploads(uploads))
    if errors or payload is None:
        return _validation_error(errors)

    ticket = models.TicketModel(
        title=payload.title,
        description=payload.description,
        priority=payload.priority.value,
        department=payload.department,
        **decision.changes,
    )
    db.add(ticket)
    stored: List[models.TicketAttachmentModel] = []
    try:
        db.flush()
        stored = attach_files(db, storage, ticket, uploads)
        db.commit()
    except Exception:
        # attach_files cleans up after its own write failures; this covers a failed commit
        written = [row.filepath for row in stored]
        db.rollback()
        discard_files(storage, written)
        raise
    db.refresh(ticket)

    logger.info("Ticket %s created by user=%s with %d attachment(s)", ticket.id, current_user.id, len(uploads))
    return schemas.TicketDetail.model_validate(ticket)


@router.get("/{ticket_id}", response_model=schemas.TicketView)
async def get_ticket(ticket: models.TicketModel = Depends(get_ticket_or_404), current_user: models.UserModel = Depends(get_current_user), db: Session = Depends(get_db)) -> schemas.TicketView:
    """Return a ticket with its attachments if the user may see it."""
    ensure(check_view(current_user, ticket), current_user)
    return schemas.TicketView(
        ticket=schemas.TicketDetail.model_validate(ticket),
        user_role=current_user.role,
        it_staff=_it_staff_for(db, current_user),
    )


@router.get("/{ticket_id}/edit", response_model=schemas.TicketEditForm)
async def edit_form(ticket: models.TicketModel = Depends(get_ticket_or_404), current_user: models.UserModel = Depends(get_current_user), db: Session = Depends(get_db)) -> schemas.TicketEditForm:
    """Data for the edit form: IT staff on their own tickets, or a manager."""
    ensure(check_edit(current_user, ticket), current_user)
    return schemas.TicketEditForm(
        ticket=schemas.TicketResponse.model_validate(ticket),
        user_role=current_user.role,
        statuses=list(models.TicketStatus),
        it_staff=_it_staff_for(db, current_user),
    )


@router.patch("/{ticket_id}", response_model=schemas.TicketResponse)
async def update_ticket(payload: dict = Body(...), ticket: models.TicketModel = Depends(get_ticket_or_404), current_user: models.UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    """Update status (IT staff on own tickets, managers on any) and assignment
    (managers only; ignored for staff)."""
    ensure(check_edit(current_user, ticket), current_user)

    try:
        update = schemas.TicketUpdate.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(field_errors(exc))

    changes = ensure(check_update(current_user, ticket, update), current_user).changes

    assignee_id = changes.get("assigned_to")
    if assignee_id is not None:
        assignee = db.get(models.UserModel, assignee_id)
        if not assignee or parse_role(assignee.role) is not models.Role.IT_STAFF:
            raise api_error(status.HTTP_400_BAD_REQUEST, "invalid_assignee", "Tickets can only be assigned to IT staff")

    for field, value in changes.items():
        setattr(ticket, field, value)
    db.commit()
    db.refresh(ticket)

    logger.info("Ticket %s updated by user=%s: %s", ticket.id, current_user.id, changes)
    return schemas.TicketResponse.model_validate(ticket)


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket(ticket: models.TicketModel = Depends(get_ticket_or_404), current_user: models.UserModel = Depends(get_current_user), db: Session = Depends(get_db), storage: AttachmentStorage = Depends(get_storage)) -> Response:
    """Delete a ticket and its attachments (IT managers only).

    Blobs go first; ones that cannot be removed are logged and the rows are
    deleted regardless.
    """
    ensure(check_delete(current_user), current_user)

    ticket_id = ticket.id
    failures = purge_files(storage, ticket)
    db.delete(ticket)
    db.commit()

    logger.info("Ticket %s deleted by user=%s (%d blob(s) left on storage)", ticket_id, current_user.id, failures)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{ticket_id}/attachments/{attachment_id}")
async def download_attachment(attachment_id: int, ticket: models.TicketModel = Depends(get_ticket_or_404), current_user: models.UserModel = Depends(get_current_user), db: Session = Depends(get_db), storage: AttachmentStorage = Depends(get_storage)) -> FileResponse:
    """Serve an attachment file to anyone who can see its ticket."""
    ensure(check_view(current_user, ticket), current_user)

    attachment = db.get(models.TicketAttachmentModel, attachment_id)
    if not attachment or attachment.ticket_id != ticket.id:
        raise api_error(status.HTTP_404_NOT_FOUND, "attachment_not_found", "Attachment not found")
    if not storage.exists(attachment.filepath):
        logger.error("Attachment %s row points at missing blob %s", attachment.id, attachment.filepath)
        raise api_error(status.HTTP_404_NOT_FOUND, "attachment_not_found", "Attachment file is missing")

    return FileResponse(storage.absolute_path(attachment.filepath), media_type=attachment.mime_type, filename=attachment.filename)
