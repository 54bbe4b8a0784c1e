"""Engine, session factory and declarative base for the service desk.

`get_db` is the request-scoped session dependency; `init_db` creates the
users, tickets and ticket_attachments tables on startup.
"""

from __future__ import annotations

import logging
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from servicedesk.config import DATABASE_URL

logger = logging.getLogger(__name__)

# uvicorn serves requests from a threadpool; SQLite connections must be shareable
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args)

# Rows are serialized after commit, so keep loaded attributes
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    import servicedesk.models  # noqa: F401  registers the tables on Base

    try:
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("Failed to create tables on %s", engine.url.render_as_string(hide_password=True))
        raise
    logger.info("Database ready: %s", ", ".join(sorted(Base.metadata.tables)))


__all__ = ["Base", "engine", "SessionLocal", "get_db", "init_db"]
