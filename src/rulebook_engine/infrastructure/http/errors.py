# src/rulebook_engine/infrastructure/http/errors.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""Structured HTTP error envelopes and exception handlers."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.responses import Response

from rulebook_engine.domain.exceptions import (
    DomainError,
    GenerationWindowError,
    RulebookNoActiveVersionError,
    RulebookRuleConflictError,
    RulebookRuleInvalidError,
    RulebookRuleNotFoundError,
)
from rulebook_engine.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

# Domain errors not listed here map to 500.
_DOMAIN_STATUS: dict[type[DomainError], int] = {
    GenerationWindowError: 422,
    RulebookRuleInvalidError: 422,
    RulebookRuleNotFoundError: 404,
    RulebookNoActiveVersionError: 409,
    RulebookRuleConflictError: 409,
}


def _request_id(request: Request) -> str | None:
    return request.headers.get("x-request-id")


def error_envelope(
    *,
    code: str,
    http_status: int,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Return the canonical ``{"error": {...}}`` payload."""
    err: dict[str, Any] = {
        "code": code,
        "http_status": http_status,
        "message": message,
    }
    if details is not None:
        err["details"] = details
    if request_id is not None:
        err["request_id"] = request_id
    return {"error": err}


def domain_error_status(exc: DomainError) -> int:
    """Return the HTTP status for a domain error."""
    for exc_type, status in _DOMAIN_STATUS.items():
        if isinstance(exc, exc_type):
            return status
    return 500


async def handle_domain_error(request: Request, exc: DomainError) -> Response:
    """Render a domain error with its code and details."""
    status = domain_error_status(exc)
    if status >= 500:
        logger.error(
            "http.domain_error",
            extra={"code": exc.code, "path": request.url.path, "error": exc.message},
        )
    payload = error_envelope(
        code=exc.code,
        http_status=status,
        message=exc.message or exc.__class__.__name__,
        details=exc.details or None,
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status, content=payload)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> Response:
    """Render request validation failures as 422."""
    payload = error_envelope(
        code="VALIDATION_ERROR",
        http_status=422,
        message="Request validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=422, content=payload)


async def handle_http_exception(request: Request, exc: HTTPException) -> Response:
    """Render ``HTTPException`` in the envelope format."""
    payload = error_envelope(
        code="HTTP_ERROR",
        http_status=exc.status_code,
        message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
        details=None if isinstance(exc.detail, str) else {"detail": exc.detail},
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)


async def handle_unhandled_exception(request: Request, exc: Exception) -> Response:
    """Render any other exception as an opaque 500."""
    logger.error(
        "http.unhandled_exception",
        extra={"path": request.url.path},
        exc_info=exc,
    )
    payload = error_envelope(
        code="INTERNAL_ERROR",
        http_status=500,
        message="Internal server error",
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=500, content=payload)
