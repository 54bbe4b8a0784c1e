"""Login credentials and bearer tokens.

Tokens are HS256 JWTs whose subject is the user's email. Passwords are hashed
with argon2; bcrypt hashes are still accepted and upgraded on the next hash.
"""

from __future__ import annotations

import logging
import warnings
from datetime import datetime, timedelta, timezone
from typing import Optional

# passlib touches an argon2-cffi attribute that is deprecated
warnings.filterwarnings("ignore", category=DeprecationWarning, message=r".*argon2.*")

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from servicedesk import models
from servicedesk.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from servicedesk.database import get_db
from servicedesk.errors import api_error

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    issued = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "iat": issued, "exp": issued + lifetime}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def _unauthorized() -> HTTPException:
    return api_error(
        status.HTTP_401_UNAUTHORIZED,
        "invalid_credentials",
        "Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def token_subject(token: str) -> Optional[str]:
    """Email carried by a valid token, or None for a bad or expired one."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected token: %s", exc)
        return None
    return claims.get("sub") or None


def _user_by_email(db: Session, email: str) -> Optional[models.UserModel]:
    return db.query(models.UserModel).filter(models.UserModel.email == email).first()


def authenticate_user(db: Session, email: str, password: str) -> Optional[models.UserModel]:
    user = _user_by_email(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> models.UserModel:
    email = token_subject(token)
    user = _user_by_email(db, email) if email else None
    if user is None:
        raise _unauthorized()
    return user


__all__ = [
    "pwd_context",
    "oauth2_scheme",
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "token_subject",
    "authenticate_user",
    "get_current_user",
]
