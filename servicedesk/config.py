"""Runtime configuration for the service desk backend.

Values come from the environment; a `.env` file in the working directory is
loaded first when present so local development does not need exported vars.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Project root (two levels up from this file)
PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _default_sqlite_url() -> str:
    db_path = PROJECT_ROOT / "servicedesk.db"
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_path.as_posix()}"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL: str = os.getenv("DATABASE_URL", _default_sqlite_url())

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Auth
SECRET_KEY = os.getenv("JWT_SECRET", "change-this-secret-in-production")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# HTTP
RATE_LIMIT = os.getenv("RATE_LIMIT", "100/minute")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

# Attachments are stored below this directory, one sub-directory per ticket
ATTACHMENT_STORAGE_DIR = os.getenv("ATTACHMENT_STORAGE_DIR", str(PROJECT_ROOT / "storage"))

# Development-only demo data endpoint
ENABLE_SEED_ENDPOINT = _as_bool(os.getenv("ENABLE_SEED_ENDPOINT", "false"))


__all__ = [
    "PROJECT_ROOT",
    "DATABASE_URL",
    "LOG_LEVEL",
    "SECRET_KEY",
    "ALGORITHM",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
    "RATE_LIMIT",
    "CORS_ORIGINS",
    "ATTACHMENT_STORAGE_DIR",
    "ENABLE_SEED_ENDPOINT",
]
