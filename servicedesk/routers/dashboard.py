"""Dashboard route: role-scoped ticket statistics."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from servicedesk import models, schemas
from servicedesk.auth import get_current_user
from servicedesk.dashboard import build_dashboard
from servicedesk.database import get_db

router = APIRouter(prefix="/api", tags=["Dashboard"])


@router.get("/dashboard", response_model=schemas.DashboardResponse)
async def dashboard(current_user: models.UserModel = Depends(get_current_user), db: Session = Depends(get_db)) -> schemas.DashboardResponse:
    """Counts per status and the five latest tickets the user can see; managers also get triage totals."""
    return build_dashboard(db, current_user)
