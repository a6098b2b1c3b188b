"""FastAPI application factory and configuration.

This module provides the application factory function for creating
and configuring the FastAPI application with all middleware, routes,
and lifecycle handlers.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from visionara.core.config import get_settings
from visionara.core.errors import IdentityError
from visionara.core.logging import bind_correlation_id, clear_context, configure_logging, get_logger
from visionara.infrastructure.identity.provider import IdentityProviderSettings
from visionara.infrastructure.identity.supabase_provider import SupabaseIdentityProvider
from visionara.infrastructure.persistence.database import (
    close_database,
    get_db_manager,
    init_database,
)

logger = get_logger(__name__)


async def bootstrap_superadmin_from_settings(app: FastAPI) -> None:
    """Create the configured superadmin if the settings name one."""
    from visionara.domain.services.audit_ledger import AuditLedger
    from visionara.domain.services.identity_synchronizer import IdentitySynchronizer
    from visionara.domain.services.password_validator import PasswordValidator
    from visionara.domain.services.setup_service import SetupService

    settings = get_settings()
    if not (settings.superadmin_email and settings.superadmin_password):
        return

    async with get_db_manager().session() as session:
        ledger = AuditLedger(session)
        synchronizer = IdentitySynchronizer(
            session,
            app.state.identity_provider,
            ledger,
            password_validator=PasswordValidator(settings.password_min_length),
        )
        user, created = await SetupService(session, synchronizer, ledger).bootstrap_superadmin(
            email=settings.superadmin_email.strip().lower(),
            password=settings.superadmin_password,
            display_name=settings.superadmin_display_name,
        )
        logger.info("Superadmin bootstrap finished", user_id=user.id, created=created)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control is yielded to the application during its lifetime.
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info(
        "Starting Visionara",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        await init_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    if getattr(app.state, "identity_provider", None) is None:
        app.state.identity_provider = SupabaseIdentityProvider(
            IdentityProviderSettings.from_settings(settings)
        )

    try:
        await bootstrap_superadmin_from_settings(app)
    except IdentityError as e:
        # The service can still run; an operator can retry via the CLI
        logger.error("Superadmin bootstrap failed", error=e.message)

    yield

    logger.info("Shutting down Visionara")
    await close_database()
    logger.info("Database connection closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Identity and credential consistency service",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_health_check(app)
    register_routes(app)
    register_exception_handlers(app)
    register_middleware(app)

    return app


def register_health_check(app: FastAPI) -> None:
    """Register health check endpoints."""

    @app.get("/health", tags=["health"])
    async def health_check():
        """Returns 200 while the process is up. Dependencies are not checked."""
        return {
            "status": "healthy",
            "service": "Visionara",
            "version": get_settings().app_version,
        }

    @app.get("/ready", tags=["health"])
    async def readiness_check():
        """Returns 200 once the database answers, 503 otherwise."""
        db_healthy = await get_db_manager().check_connection()

        if db_healthy:
            return {
                "status": "ready",
                "service": "Visionara",
                "version": get_settings().app_version,
                "database": "connected",
            }
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "service": "Visionara",
                "database": "disconnected",
            },
        )


def register_routes(app: FastAPI) -> None:
    """Register API routes."""
    from visionara.infrastructure.api.routes import (
        auth_router,
        password_router,
        profile_router,
        roles_router,
        users_router,
    )

    settings = get_settings()

    app.include_router(auth_router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])
    app.include_router(profile_router, prefix=f"{settings.api_prefix}/me", tags=["profile"])
    app.include_router(
        password_router, prefix=f"{settings.api_prefix}/password", tags=["password"]
    )
    app.include_router(roles_router, prefix=f"{settings.api_prefix}/roles", tags=["roles"])
    app.include_router(users_router, prefix=f"{settings.api_prefix}/users", tags=["users"])


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(IdentityError)
    async def identity_error_handler(request: Request, exc: IdentityError):
        """Render a domain error with its status and client-safe message."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Request failed",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error_type=type(exc).__name__,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "details": exc.details},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies are reported as 400 with field details."""
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"],
                "code": error["type"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=str(request.url),
            method=request.method,
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if get_settings().debug else "An unexpected error occurred",
            },
        )


def register_middleware(app: FastAPI) -> None:
    """Register custom middleware."""

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Log every request and tag it with a correlation ID."""
        correlation_id = request.headers.get("X-Correlation-ID", f"cid_{uuid.uuid4().hex[:12]}")
        bind_correlation_id(correlation_id)

        logger.info("Request started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
            )
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            clear_context()


app = create_app()
