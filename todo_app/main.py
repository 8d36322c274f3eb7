"""FastAPI main application with app factory and route configuration."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .deps import get_settings
from .errors import (
    AppError,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RequestValidationFailed,
)
from .routes import auth, tasks, users
from .schemas import HealthResponse
from .services.auth_service import get_auth_service, initialize_auth_service
from .services.task_service import get_task_service, initialize_task_service
from .services.user_service import initialize_user_service
from .utils.logging import (
    configure_request_logging,
    log_shutdown_info,
    log_startup_info,
    setup_logging,
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events.

    Args:
        app: FastAPI application instance
    """
    try:
        settings = get_settings()

        setup_logging(settings)
        log_startup_info(settings)

        auth_service = initialize_auth_service(settings)
        initialize_user_service(auth_service.users)
        initialize_task_service()
        logger.info("Services initialized")

        logger.info("Application startup completed successfully")

    except Exception as e:
        logger.error(f"Error during application startup: {str(e)}")
        raise

    yield

    log_shutdown_info()


def _field_errors(exc: RequestValidationError):
    return [
        {
            "field": ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path")) or "body",
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="To-Do API",
        description="Multi-user to-do lists with filtering, search, sorting and pagination",
        version=VERSION,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(configure_request_logging())

    # Custom exception handlers
    @app.exception_handler(RequestValidationFailed)
    async def field_validation_handler(request: Request, exc: RequestValidationFailed):
        """Report user-correctable input errors per field."""
        logger.warning(f"Validation error for {request.method} {request.url.path}: {exc.errors}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.public_message, "details": exc.errors, "status_code": exc.status_code},
        )

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        logger.warning(f"Conflict for {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "details": exc.errors, "status_code": exc.status_code},
        )

    @app.exception_handler(AuthenticationError)
    async def authentication_handler(request: Request, exc: AuthenticationError):
        """Reject the request without saying why."""
        logger.info(f"Authentication failed for {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.public_message, "status_code": exc.status_code},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        """Absent and not-owned records get the same answer."""
        logger.info(f"Not found: {request.method} {request.url.path}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.public_message, "status_code": exc.status_code},
        )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """Upstream and other service failures; details stay in the log."""
        logger.error(f"{type(exc).__name__} for {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.public_message, "status_code": exc.status_code},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with proper logging."""
        logger.warning(
            f"HTTP {exc.status_code}: {exc.detail} for {request.method} {request.url.path}"
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail, "status_code": exc.status_code},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors with per-field details."""
        details = _field_errors(exc)
        logger.warning(f"Validation error for {request.method} {request.url.path}: {details}")
        return JSONResponse(
            status_code=RequestValidationFailed.status_code,
            content={"error": "Validation error", "details": details, "status_code": RequestValidationFailed.status_code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(
            f"Unexpected error for {request.method} {request.url.path}: {str(exc)}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "status_code": 500},
        )

    @app.get("/healthz", tags=["health"])
    async def health_check():
        """Health check endpoint for monitoring and load balancers."""
        services = {
            "auth_service": "initialized" if get_auth_service() else "not_initialized",
            "task_service": "initialized" if get_task_service() else "not_initialized",
        }
        health = HealthResponse(timestamp=datetime.now(timezone.utc), version=VERSION)
        if "not_initialized" in services.values():
            health.status = "degraded"
        return {**health.model_dump(mode="json"), "services": services}

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "To-Do API",
            "version": VERSION,
            "docs_url": "/docs",
            "health_check": "/healthz",
            "endpoints": {
                "auth": "/auth",
                "users": "/users",
                "todos": "/todos",
            },
        }

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(tasks.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the app instance
app = create_app()


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "todo_app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        log_config=None,
    )
