# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the Classbook API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src import __version__
from src.api.dependencies import close_db, init_db
from src.api.middleware.auth import AuthMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.domains.records.errors import (
    ConflictOnInsertError,
    NotFoundError,
    RecordsError,
    RecordValidationError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from src.infrastructure.database.connection import DatabaseError
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)

RECORDS_ERROR_STATUS: dict[type[RecordsError], int] = {
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    RecordValidationError: 422,
    ConflictOnInsertError: status.HTTP_409_CONFLICT,
    UpstreamUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Configures logging and opens the database pool on startup, closes the
    pool on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting Classbook API: environment=%s, debug=%s",
        settings.environment,
        settings.debug,
    )

    try:
        await init_db()
        logger.info("Database connection initialized")
    except DatabaseError as e:
        logger.warning("Failed to initialize database connection: %s", str(e))

    yield

    try:
        await close_db()
        logger.info("Database connection closed")
    except DatabaseError as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down Classbook API")


async def records_error_handler(request: Request, exc: RecordsError) -> JSONResponse:
    """Render a records error with a status and kind the UI can tell apart.

    Args:
        request: The failed request.
        exc: The raised records error.

    Returns:
        JSON response with detail, error kind and, for batch validation,
        the offending entry.
    """
    status_code = next(
        (code for kind, code in RECORDS_ERROR_STATUS.items() if isinstance(exc, kind)),
        status.HTTP_400_BAD_REQUEST,
    )
    content: dict[str, object] = {"detail": exc.message, "error": exc.kind}

    if isinstance(exc, RecordValidationError):
        content["entry_index"] = exc.entry_index
        content["field"] = exc.field
    if isinstance(exc, UpstreamUnavailableError):
        content["retryable"] = exc.retryable
        logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, str(exc))

    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Classbook API",
        description="Grade and attendance records for school teachers",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Disable automatic redirects from /path to /path/
        # This prevents 307 redirects that lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(RecordsError, records_error_handler)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    # Auth middleware - validates JWT tokens
    app.add_middleware(AuthMiddleware)

    # CORS middleware (added last to execute first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
