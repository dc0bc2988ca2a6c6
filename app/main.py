"""ANETI Messaging API - Main Application Module.

This module initializes the FastAPI application with configuration,
middleware, routing, error rendering and lifecycle management for the
messaging and notification service.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import ConfigValidator, settings
from app.core.logging_config import setup_logging
from app.database import AsyncSessionLocal, engine
from app.exceptions.base import ErrorKind, kind_for_status
from models import Base, utc_now

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Manage application lifecycle events."""
    setup_logging()
    logger.info(f"Starting {settings.app_name} ({settings.environment.value})")
    ConfigValidator.validate_required_settings()

    # Development mode: auto-create tables, otherwise use Alembic migrations
    if settings.environment == "development":
        logger.info("Development mode: creating/updating database tables")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    else:
        logger.info("Use 'alembic upgrade head' to manage the database schema")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Direct and group messaging, read receipts and notification inbox",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url="/redoc" if settings.environment == "development" else None,
    )

    setup_middleware(app)
    setup_exception_handlers(app)
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def error_response(
    request: Request,
    status_code: int,
    kind: str,
    message: str,
    code: str | None = None,
    details=None,
    headers: dict | None = None,
) -> JSONResponse:
    """Render the standard ``{"status": "error", "error": {...}}`` envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "error": {"kind": kind, "message": message, "code": code, "details": details},
            "timestamp": utc_now().isoformat(),
            "request_id": getattr(request.state, "request_id", None),
        },
        headers=headers,
    )


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Application exceptions carry a structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            code = exc.detail.get("error_code", "HTTP_ERROR")
            kind = exc.detail.get("kind") or kind_for_status(exc.status_code)
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            code = "HTTP_ERROR"
            kind = kind_for_status(exc.status_code)
            details = None

        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {message}")
        return error_response(
            request, exc.status_code, kind, message, code, details, getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            if "input" in error:
                error_dict["input"] = str(error["input"])
            errors.append(error_dict)

        return error_response(
            request, 422, ErrorKind.VALIDATION, "Validation error", "VALIDATION_ERROR", errors
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(
            request, 500, ErrorKind.INTERNAL, "Internal server error", "INTERNAL_ERROR"
        )


def setup_routers(app: FastAPI):
    """Configure application routers."""
    from app.domains.events.controller import router as events_router
    from app.domains.messaging.controller import messages_router
    from app.domains.messaging.controller import router as conversations_router
    from app.domains.notification.controller import router as notification_router
    from app.domains.user.controller import router as user_router

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        db_status = "healthy"
        try:
            async with AsyncSessionLocal() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"Database health check failed: {str(e)}")
            db_status = "unhealthy"

        return JSONResponse(
            status_code=200 if db_status == "healthy" else 503,
            content={
                "status": "healthy" if db_status == "healthy" else "degraded",
                "version": settings.version,
                "environment": settings.environment,
                "timestamp": utc_now().isoformat(),
                "services": {"database": db_status},
            },
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": "Messaging and notification service",
            "docs_url": "/docs" if settings.environment == "development" else None,
        }

    app.include_router(user_router)
    app.include_router(conversations_router)
    app.include_router(messages_router)
    app.include_router(notification_router)
    app.include_router(events_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
