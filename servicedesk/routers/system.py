"""System routes: health check and the development seed endpoint.

`/api/seed` only exists in practice when ENABLE_SEED_ENDPOINT is set; it
creates well-known demo accounts and must stay off in production.
"""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from servicedesk import config
from servicedesk.database import get_db
from servicedesk.errors import api_error
from servicedesk.seed import seed_database

router = APIRouter(prefix="/api", tags=["System"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/seed")
async def seed_data(db: Session = Depends(get_db)) -> dict:
    """Seed demo accounts and tickets (idempotent, development only)."""
    if not config.ENABLE_SEED_ENDPOINT:
        raise api_error(status.HTTP_404_NOT_FOUND, "not_found", "Not Found")
    return seed_database(db)
