# src/rulebook_engine/main.py
# Copyright (c) Rulebook Engine contributors
# SPDX-License-Identifier: MIT
"""
Application Entry (Adapters Bootstrap)

Synopsis:
    FastAPI bootstrap exposing the internal rulebook triggers and the
    Prometheus scrape endpoint. Provides an application factory
    (`create_app`).

Design:
    • Bootstrap only (no business logic): routers + exception handlers.
    • Lifespan initializes the database engine and disposes it on shutdown.
    • Root JSON logging configured at import time.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from rulebook_engine import __version__
from rulebook_engine.adapters.routers.internal_rulebook_router import (
    router as internal_rulebook_router,
)
from rulebook_engine.adapters.routers.metrics_router import router as metrics_router
from rulebook_engine.config.settings import get_settings
from rulebook_engine.domain.exceptions import DomainError
from rulebook_engine.infrastructure.database.session import (
    dispose_engine,
    init_engine_and_sessionmaker,
)
from rulebook_engine.infrastructure.http.errors import (
    handle_domain_error,
    handle_http_exception,
    handle_unhandled_exception,
    handle_validation_error,
)
from rulebook_engine.infrastructure.logging.logger import (
    configure_root_logging,
    get_json_logger,
)

configure_root_logging()
logger = get_json_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize the database engine on startup and dispose it on shutdown."""
    settings = get_settings()
    init_engine_and_sessionmaker(settings)
    logger.info(
        "service_startup",
        extra={"service": "rulebook-engine", "environment": settings.environment.value},
    )
    try:
        yield
    finally:
        await dispose_engine()
        logger.info("service_shutdown", extra={"service": "rulebook-engine"})


def _patch_exception_handlers(app: FastAPI) -> None:
    """Install structured exception handlers.

    Args:
        app: FastAPI application.
    """

    async def _domain_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, DomainError):
            raise exc
        return await handle_domain_error(request, exc)

    async def _http_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, HTTPException):
            raise exc
        return await handle_http_exception(request, exc)

    async def _validation_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, RequestValidationError):
            raise exc
        return await handle_validation_error(request, exc)

    async def _unhandled_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        return await handle_unhandled_exception(request, exc)

    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(HTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        with_lifespan: Attach the database lifespan. Tests that override the
            UnitOfWork dependency pass ``False``.

    Returns:
        FastAPI: Configured application instance.
    """
    app = FastAPI(
        title="Rulebook Engine",
        version=__version__,
        description="Internal triggers for compliance rulebook task generation.",
        lifespan=lifespan if with_lifespan else None,
    )
    _patch_exception_handlers(app)
    app.include_router(internal_rulebook_router)
    app.include_router(metrics_router)
    return app


if __name__ == "__main__":  # pragma: no cover
    import os

    import uvicorn

    uvicorn.run(
        "rulebook_engine.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=int(os.getenv("PORT", "8080")),
    )
