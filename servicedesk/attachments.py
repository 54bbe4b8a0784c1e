"""Attachment rules and lifecycle for tickets.

Files are accepted only while a ticket is being created: at most
`MAX_ATTACHMENTS` files, each up to `MAX_ATTACHMENT_SIZE` bytes with an allowed
extension. Validation covers the whole batch before anything is written.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from servicedesk import models
from servicedesk.storage import AttachmentStorage, StorageError

logger = logging.getLogger(__name__)

MAX_ATTACHMENTS = 5
MAX_ATTACHMENT_SIZE = 2 * 1024 * 1024  # 2 MB

ALLOWED_EXTENSIONS = ("jpeg", "png", "jpg", "gif", "pdf", "doc", "docx")
EXTENSION_MIME_TYPES = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
# Declared content types accepted for each extension
ACCEPTED_MIME_TYPES = {ext: {mime} for ext, mime in EXTENSION_MIME_TYPES.items()}
ACCEPTED_MIME_TYPES["jpeg"].add("image/pjpeg")
ACCEPTED_MIME_TYPES["jpg"].add("image/pjpeg")
# Content types that say nothing about the file; the extension decides
GENERIC_MIME_TYPES = {"", "application/octet-stream"}

TOO_MANY_FILES = f"You can upload maximum {MAX_ATTACHMENTS} files."
TYPE_NOT_ALLOWED = "Attachments must be: " + ", ".join(ALLOWED_EXTENSIONS) + "."
FILE_TOO_LARGE = "Each file must not exceed 2MB."


@dataclass(frozen=True)
class PendingUpload:
    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lower().lstrip(".")

    @property
    def declared_type(self) -> str:
        """Content type without parameters, lower-cased; empty when none was sent."""
        return (self.content_type or "").split(";")[0].strip().lower()

    @property
    def mime_type(self) -> str:
        if self.declared_type not in GENERIC_MIME_TYPES:
            return self.declared_type
        return EXTENSION_MIME_TYPES.get(self.extension, "application/octet-stream")


async def read_uploads(items: Iterable[object]) -> List[PendingUpload]:
    """Read multipart form items into memory, skipping empty file inputs."""
    uploads: List[PendingUpload] = []
    for item in items:
        if not isinstance(item, UploadFile) or not item.filename:
            continue
        data = await item.read()
        uploads.append(PendingUpload(filename=os.path.basename(item.filename), content_type=item.content_type, data=data))
    logger.debug("Read %d upload(s) from form", len(uploads))
    return uploads


def _error(loc: tuple, msg: str, err_type: str) -> dict:
    return {"loc": list(loc), "msg": msg, "type": err_type}


def _type_allowed(upload: PendingUpload) -> bool:
    if upload.extension not in ALLOWED_EXTENSIONS:
        return False
    return upload.declared_type in GENERIC_MIME_TYPES or upload.declared_type in ACCEPTED_MIME_TYPES[upload.extension]


def validate_uploads(uploads: List[PendingUpload]) -> List[dict]:
    """Return field-level errors for the batch; an empty list means it is acceptable."""
    errors: List[dict] = []
    if len(uploads) > MAX_ATTACHMENTS:
        errors.append(_error(("attachments",), TOO_MANY_FILES, "too_many_files"))
    for index, upload in enumerate(uploads):
        if not _type_allowed(upload):
            errors.append(_error(("attachments", index), TYPE_NOT_ALLOWED, "file_type_not_allowed"))
        if upload.size > MAX_ATTACHMENT_SIZE:
            errors.append(_error(("attachments", index), FILE_TOO_LARGE, "file_too_large"))
    return errors


def attach_files(db: Session, storage: AttachmentStorage, ticket: models.TicketModel, uploads: List[PendingUpload]) -> List[models.TicketAttachmentModel]:
    """Write blobs for a flushed ticket and stage their rows on the session.

    The caller commits. If a write fails, blobs already written for this
    ticket are removed before the StorageError propagates, so a rollback
    leaves neither rows nor files behind.
    """
    written: List[str] = []
    rows: List[models.TicketAttachmentModel] = []
    try:
        for upload in uploads:
            stored = storage.store(ticket.id, upload.filename, upload.data, upload.mime_type)
            written.append(stored.path)
            row = models.TicketAttachmentModel(
                ticket_id=ticket.id,
                filename=upload.filename,
                filepath=stored.path,
                mime_type=stored.mime_type,
                file_size=stored.size,
            )
            db.add(row)
            rows.append(row)
    except StorageError:
        logger.exception("Failed to store attachments for ticket %s", ticket.id)
        discard_files(storage, written)
        raise
    return rows


def discard_files(storage: AttachmentStorage, paths: List[str]) -> None:
    """Best-effort removal of blobs whose rows were never committed."""
    for path in paths:
        try:
            storage.delete(path)
        except StorageError:
            logger.warning("Could not clean up attachment blob %s", path)


def purge_files(storage: AttachmentStorage, ticket: models.TicketModel) -> int:
    """Remove the blobs of every attachment on `ticket`.

    Failures are logged and skipped so the ticket itself can still be
    deleted. Returns the number of blobs that could not be removed.
    """
    failures = 0
    for attachment in ticket.attachments:
        try:
            storage.delete(attachment.filepath)
        except StorageError as exc:
            failures += 1
            logger.warning("Attachment %s of ticket %s left on storage: %s", attachment.id, ticket.id, exc)
    return failures


__all__ = [
    "MAX_ATTACHMENTS",
    "MAX_ATTACHMENT_SIZE",
    "ALLOWED_EXTENSIONS",
    "PendingUpload",
    "read_uploads",
    "validate_uploads",
    "attach_files",
    "discard_files",
    "purge_files",
]
