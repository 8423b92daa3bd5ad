"""
TaskBoard — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(settings) builds the database engine, session factory and
       service container once, stores them on app.state, and registers
       middleware, exception handlers and routers.
Who:   uvicorn (`uvicorn taskboard.main:app`) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Req ID      │→│ RateLim  │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────────┐ ┌────────────┐   │
    │  │ /api/auth/*  │ │ /api/tasks/* │ │ GET /health│   │
    │  └──────────────┘ └──────────────┘ └────────────┘   │
    │                                                     │
    │  app.state: settings, engine, session_factory,      │
    │             services (ServiceContainer)             │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config validation → optional create_all
    Shutdown: dispose the engine
"""

import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from taskboard import __version__
from taskboard.config import Settings, get_settings
from taskboard.database import create_engine, create_session_factory, dispose_engine, init_models
from taskboard.exceptions import (
    AuthenticationError,
    DatabaseError,
    DuplicateUsernameError,
    ForbiddenError,
    NotFoundError,
    TaskBoardError,
    ValidationError,
)
from taskboard.middleware.logging import RequestLoggingMiddleware
from taskboard.middleware.rate_limit import RateLimitMiddleware
from taskboard.middleware.request_id import RequestIDMiddleware, request_id_var
from taskboard.routes import auth, health, tasks
from taskboard.services.container import build_services
from taskboard.services.session_issuer import Clock

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure root logging once per process.

    Format: 2024-01-15T12:00:00 [INFO] taskboard.access: GET /api/tasks 200 4.2ms ...
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-query and per-request noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    setup_logging(settings.log_level)
    logger.info("TaskBoard %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so health checks and local development still work
        logger.error("Configuration error: %s", str(e))

    if settings.auto_create_tables:
        await init_models(app.state.engine)
        logger.info("Database tables ensured (auto_create_tables=true)")

    logger.info("Session tokens expire after %ds", app.state.services.sessions.ttl_seconds)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("TaskBoard shutting down...")
    await dispose_engine(app.state.engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "") or request_id_var.get("")


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": _request_id(request)}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the ErrorResponse body.

    Handler table:
        ValidationError / RequestValidationError → 400
        AuthenticationError (all subclasses)     → 401, one generic message
        ForbiddenError                           → 403
        NotFoundError                            → 404
        DuplicateUsernameError                   → 409
        DatabaseError                            → 500, generic message
        TaskBoardError / Exception               → 500
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", _request_id(request), exc.message)
        return _error_response(request, 400, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Malformed request")
        logger.warning("[%s] Malformed request: %s", _request_id(request), message)
        return _error_response(
            request,
            400,
            "validation_error",
            f"{field}: {message}" if field else message,
            {"field": field} if field else None,
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        # The concrete reason (expired, bad signature, wrong password, ...) is
        # logged only; clients always see the same body.
        logger.warning(
            "[%s] Authentication failed on %s: %s",
            _request_id(request),
            request.url.path,
            exc.reason,
        )
        return _error_response(
            request,
            401,
            "unauthenticated",
            "Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return _error_response(request, 403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(request, 404, "not_found", exc.message)

    @app.exception_handler(DuplicateUsernameError)
    async def handle_duplicate_username(request: Request, exc: DuplicateUsernameError):
        return _error_response(
            request, 409, "duplicate_username", exc.message, {"field": "username"}
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s", _request_id(request), exc.message, exc.context
        )
        return _error_response(
            request, 500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(TaskBoardError)
    async def handle_taskboard_error(request: Request, exc: TaskBoardError):
        logger.error("[%s] Unhandled application error: %s", _request_id(request), exc.message)
        return _error_response(request, 500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s", _request_id(request), str(exc), exc_info=True
        )
        return _error_response(
            request,
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None, clock: Clock = time.time) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: configuration; defaults to get_settings() (environment)
        clock:    time source for session tokens; defaults to time.time
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="TaskBoard API",
        description=(
            "Task management API: accounts, signed session tokens and "
            "owner-scoped tasks with an OPEN / IN_PROGRESS / DONE lifecycle."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Components (built once per process) ──────────────────────────────
    engine = create_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.services = build_services(settings, clock=clock)

    # ── Middleware ───────────────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
        auth_max_requests=settings.auth_rate_limit_requests,
    )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(tasks.router)
    app.include_router(health.router)

    return app


app = create_app()
