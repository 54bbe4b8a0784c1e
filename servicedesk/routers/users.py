"""User directory routes.

Accounts are created by seeding and never edited or deleted through the API;
the only listing exposed is the set of IT staff a manager can assign to.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from servicedesk import models, schemas
from servicedesk.database import get_db
from servicedesk.dependencies import require_manager

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/it-staff", response_model=List[schemas.UserSummary])
async def list_it_staff(_manager: models.UserModel = Depends(require_manager), db: Session = Depends(get_db)) -> List[schemas.UserSummary]:
    """List IT staff accounts (IT managers only)."""
    users = (
        db.query(models.UserModel)
        .filter(models.UserModel.role == models.Role.IT_STAFF.value)
        .order_by(models.UserModel.name)
        .all()
    )
    return [schemas.UserSummary.model_validate(u) for u in users]
