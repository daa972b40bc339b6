"""
FastAPI application entry point - email open tracking service
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_async_sqlalchemy import SQLAlchemyMiddleware

from app.api.middlewares.auto_commit import AutoCommitMiddleware
from app.api.routes import api_router
from app.database import DatabaseManager, engine_args, ensure_sqlite_directory
from app.exceptions import BaseError, ErrorType, InvalidDataError
from settings import settings

logger = logging.getLogger(__name__)

ENDPOINTS = (
    ("GET", "/health", "Health check"),
    ("GET", "/track/{id}.png", "Tracking pixel"),
    ("POST", "/api/emails", "Create tracked email"),
    ("GET", "/api/emails", "List all emails"),
    ("GET", "/api/emails/{id}", "Get email details"),
    ("GET", "/api/stats", "Get statistics"),
)


def _setup_error_handlers(app: FastAPI) -> None:
    """Setup FastAPI exception handlers."""

    @app.exception_handler(HTTPException)
    async def handle_http_error(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle FastAPI HTTPException errors."""
        return JSONResponse(status_code=exc.status_code or 400, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Report malformed requests as invalid data, naming only the offending fields."""
        fields = sorted({str(error["loc"][-1]) for error in exc.errors() if error.get("loc")})
        logger.warning(f"Validation error on {request.url.path}; fields: {fields}")

        error = InvalidDataError(f"Invalid request: {', '.join(fields) or 'body'}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error.to_payload())

    @app.exception_handler(BaseError)
    async def handle_app_error(request: Request, exc: BaseError) -> JSONResponse:
        """Handle custom BaseError exceptions."""
        if exc.is_client_error:
            logger.warning(f"A user-related (HTTP 4xx) error occurred; {exc}", extra=exc.extra)
        else:
            logger.exception(f"An unhandled app exception occurred; {exc}", extra=exc.extra)

        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
        """Handle any unhandled exceptions."""
        logger.exception(f"An unhandled exception occurred; error: {exc}")

        return JSONResponse(status_code=500, content={"error": ErrorType.UNHANDLED_EXCEPTION.value})


def _lifespan(database_url: str):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.database.create_tables:
            database_manager = DatabaseManager()
            database_manager.init_db(database_url)
            try:
                await database_manager.create_tables()
            finally:
                await database_manager.close()

        logger.info(f"Tracking service ready; public url: {settings.server.public_url}")
        for method, path, description in ENDPOINTS:
            logger.info(f"  {method:5} {path:20} - {description}")

        yield

    return lifespan


def create_app(database_url: str | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    db_url = database_url or settings.database.url
    ensure_sqlite_directory(db_url)

    app = FastAPI(
        title="Mail Tracker API",
        description="Email open tracking service",
        version="1.0.0",
        lifespan=_lifespan(db_url),
        docs_url="/docs" if settings.environment.serves_docs else None,
    )

    # Setup error handlers
    _setup_error_handlers(app)

    # Add auto-commit middleware FIRST (it will run LAST, after SQLAlchemy middleware creates the session)
    app.add_middleware(AutoCommitMiddleware)

    # Add SQLAlchemy middleware for database session management
    app.add_middleware(SQLAlchemyMiddleware, db_url=db_url, engine_args=engine_args(db_url))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Include API routers
    app.include_router(api_router)

    # Health check endpoint
    @app.get("/health")
    async def health_check() -> dict[str, bool]:
        return {"ok": True}

    return app
