"""ASGI entry point: `uvicorn servicedesk.main:app`.

Wires CORS, the per-client rate limit, the JSON error handlers and every
router under `/api`. Tables are created on startup.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from servicedesk.config import CORS_ORIGINS, LOG_LEVEL, RATE_LIMIT
from servicedesk.database import init_db
from servicedesk.errors import make_validation_error_response
from servicedesk.routers import auth, dashboard, system, tickets, users
from servicedesk.storage import StorageError

logger = logging.getLogger(__name__)
logging.basicConfig(level=LOG_LEVEL)

limiter = Limiter(key_func=get_remote_address, default_limits=[RATE_LIMIT])


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Lifespan startup: initializing database")
    init_db()
    yield
    logger.info("Lifespan shutdown")


app = FastAPI(title="IT Service Desk", version="1.0.0", lifespan=lifespan)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

if CORS_ORIGINS == "*":
    allowed_origins: List[str] = ["*"]
else:
    # comma separated list
    allowed_origins = [o.strip() for o in CORS_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"error": {"code": "rate_limited", "message": "Rate limit exceeded"}})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content=make_validation_error_response(exc.errors()))


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": {"code": "storage_error", "message": "Attachment storage failed"}})


for module in (auth, users, tickets, dashboard, system):
    app.include_router(module.router)
    logger.debug("Included router: %s", module.__name__)


__all__ = ["app"]
