"""Authentication API routes: login and current-user endpoint."""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from servicedesk import models, schemas
from servicedesk.auth import authenticate_user, create_access_token, get_current_user
from servicedesk.config import ACCESS_TOKEN_EXPIRE_MINUTES
from servicedesk.database import get_db
from servicedesk.errors import api_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/login", response_model=schemas.TokenResponse)
async def login(credentials: schemas.LoginRequest, db: Session = Depends(get_db)) -> schemas.TokenResponse:
    """Authenticate with email and password and return a JWT token and user info."""
    user = authenticate_user(db, credentials.email, credentials.password)
    if not user:
        logger.info("Failed login for %s", credentials.email)
        raise api_error(status.HTTP_401_UNAUTHORIZED, "invalid_credentials", "Invalid credentials")

    access_token = create_access_token(data={"sub": user.email}, expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    logger.info("User %s logged in", user.id)

    return schemas.TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user=schemas.UserResponse.model_validate(user),
    )


@router.get("/me", response_model=schemas.UserResponse)
async def me(current_user: models.UserModel = Depends(get_current_user)) -> schemas.UserResponse:
    """Return current authenticated user."""
    return schemas.UserResponse.model_validate(current_user)
