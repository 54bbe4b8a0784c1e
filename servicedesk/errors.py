"""Centralized API error helpers and standard error schema.

Provides:
- api_error(...) -> HTTPException with JSON detail: {"error": {"code": str, "message": str, "details": ...}}
- forbidden(...) -> 403 api_error carrying a human-readable denial message
- field_errors(...) -> pydantic errors reduced to loc/msg/type with client-facing messages
- make_validation_error_response(...) -> dict payload used by exception handler
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError


def api_error(status_code: int, code: str, message: str, details: Optional[Any] = None, headers: Optional[dict] = None) -> HTTPException:
    payload: dict = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return HTTPException(status_code=status_code, detail=payload, headers=headers)


def forbidden(message: str) -> HTTPException:
    return api_error(status.HTTP_403_FORBIDDEN, "forbidden", message)


def make_validation_error_response(errors: Any) -> dict:
    # jsonable_encoder converts exception objects that pydantic may put in `ctx`
    payload = {"error": {"code": "validation_error", "message": "Validation error", "details": errors}}
    return jsonable_encoder(payload)


def field_errors(exc: ValidationError, messages: Optional[Dict[Tuple[str, str], str]] = None) -> List[dict]:
    """Reduce pydantic errors to `loc`, `msg` and `type`.

    `messages` maps (field, error type) to the text shown to the client. The
    rejected input is never echoed back; it may be an uploaded file.
    """
    messages = messages or {}
    details = []
    for err in exc.errors(include_url=False):
        loc = list(err["loc"])
        field = str(loc[0]) if loc else ""
        details.append({"loc": loc, "msg": messages.get((field, err["type"]), err["msg"]), "type": err["type"]})
    return details
