"""On-disk blob storage for ticket attachments.

Paths handed out and accepted by `AttachmentStorage` are relative to its root
and always use forward slashes, e.g. `ticket-attachments/12/3f0c..._report.pdf`.
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass

from servicedesk.config import ATTACHMENT_STORAGE_DIR

logger = logging.getLogger(__name__)

ATTACHMENT_DIR = "ticket-attachments"


class StorageError(Exception):
    """A blob could not be written or removed."""


@dataclass(frozen=True)
class StoredFile:
    path: str
    mime_type: str
    size: int


class AttachmentStorage:
    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    def absolute_path(self, path: str) -> str:
        full = os.path.abspath(os.path.join(self.root, path))
        if os.path.commonpath([self.root, full]) != self.root:
            raise StorageError(f"Path escapes storage root: {path}")
        return full

    def store(self, ticket_id: int, filename: str, data: bytes, mime_type: str) -> StoredFile:
        safe_name = f"{uuid.uuid4().hex}_{os.path.basename(filename) or 'file'}"
        rel = f"{ATTACHMENT_DIR}/{ticket_id}/{safe_name}"
        full = self.absolute_path(rel)
        try:
            os.makedirs(os.path.dirname(full), exist_ok=True)
            with open(full, "wb") as f:
                f.write(data)
        except OSError as exc:
            raise StorageError(f"Could not write {rel}: {exc}") from exc
        logger.debug("Stored %d bytes at %s", len(data), rel)
        return StoredFile(path=rel, mime_type=mime_type, size=len(data))

    def delete(self, path: str) -> None:
        full = self.absolute_path(path)
        try:
            os.remove(full)
        except FileNotFoundError:
            logger.info("Attachment blob already missing: %s", path)
        except OSError as exc:
            raise StorageError(f"Could not delete {path}: {exc}") from exc

    def exists(self, path: str) -> bool:
        return os.path.isfile(self.absolute_path(path))


def get_storage() -> AttachmentStorage:
    """FastAPI dependency returning the configured attachment storage."""
    return AttachmentStorage(ATTACHMENT_STORAGE_DIR)


__all__ = ["StorageError", "StoredFile", "AttachmentStorage", "get_storage", "ATTACHMENT_DIR"]
