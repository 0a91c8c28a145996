"""FastAPI application factory and entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import appeal_prospect
from appeal_prospect.auth import SessionGuard
from appeal_prospect.core.secret_settings import SecretSettings

from .middleware import RequestLoggingMiddleware, SessionMiddleware, register_exception_handlers
from .schemas import HealthCheckResponse
from .settings import get_settings

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: log startup and shutdown."""
    settings = get_settings()
    logger.info("api_starting", host=settings.host, port=settings.port)
    logger.info("api_ready", version=appeal_prospect.__version__, debug=settings.debug)

    yield

    logger.info("api_shutting_down")


def create_app(
    guard: Optional[SessionGuard] = None,
    secret_settings: Optional[SecretSettings] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    When no guard or settings facade is passed, the package is configured
    from the environment first, so missing or malformed key material stops
    the app from being created.

    Args:
        guard: SessionGuard to use (tests inject one with in-memory stores)
        secret_settings: SecretSettings facade to use

    Returns:
        Configured FastAPI application instance

    Raises:
        ConfigurationError: If the master key is missing or malformed

    Example:
        from fastapi.testclient import TestClient
        client = TestClient(create_app(guard=guard, secret_settings=settings))
    """
    settings = get_settings()

    if guard is None or secret_settings is None:
        appeal_prospect.configure()
        guard = guard or appeal_prospect.get_guard()
        secret_settings = secret_settings or appeal_prospect.get_secret_settings()

    app = FastAPI(
        title="Appeal Prospect API",
        version=appeal_prospect.__version__,
        description="Session, CSRF and operator-secret endpoints for Appeal Prospect.",
        openapi_url=settings.openapi_url,
        openapi_tags=[
            {"name": "Health", "description": "Health check and status endpoints"},
            {"name": "Authentication", "description": "Sign-in, sign-out, registration and CSRF tokens"},
            {"name": "Admin", "description": "Privileged operator settings"},
        ],
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.guard = guard
    app.state.secret_settings = secret_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SessionMiddleware)

    if settings.log_requests:
        app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check",
        response_model=HealthCheckResponse,
    )
    async def health_check() -> HealthCheckResponse:
        """Check API health status."""
        return HealthCheckResponse(status="ok", version=appeal_prospect.__version__)

    from .routes import admin, auth

    app.include_router(auth.router)
    app.include_router(admin.router)

    logger.info("api_app_created", routes=len(app.routes))

    return app


def run() -> None:
    """
    Run the API server with uvicorn.

    This is the entry point for the appeal-prospect-api script.
    """
    settings = get_settings()

    uvicorn.run(
        "appeal_prospect.web.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
