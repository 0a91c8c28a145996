"""Middleware and exception handlers for the FastAPI application."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from appeal_prospect.auth import RequestContext, SessionGuard
from appeal_prospect.common.logging_config import bind_context, clear_context
from appeal_prospect.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    CsrfInvalidError,
    DecryptionError,
    PrivilegeRequiredError,
    SessionInvalidError,
    ThrottledError,
    ValidationError,
    user_message,
)

from .settings import APISettings, get_settings

logger = structlog.get_logger(__name__)


def get_client_ip(request: Request, settings: APISettings) -> str:
    """Extract client IP from request, considering trusted proxies.

    Only parses X-Forwarded-For when trusted_proxy_count > 0.
    Takes the Nth-from-right IP where N = trusted_proxy_count.
    """
    if settings.trusted_proxy_count > 0:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ips = [ip.strip() for ip in forwarded.split(",")]
            index = max(0, len(ips) - settings.trusted_proxy_count)
            return ips[index]
    return request.client.host if request.client else ""


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers for the FastAPI application.

    Maps security exceptions to generic JSON responses:
    - AuthenticationError, SessionInvalidError -> 401 with redirect_to
    - CsrfInvalidError, PrivilegeRequiredError -> 403
    - ThrottledError -> 429 with Retry-After
    - ValidationError -> 400 with the offending field
    - DecryptionError, ConfigurationError -> 500

    Args:
        app: FastAPI application instance
    """
    login_path = get_settings().login_path

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        logger.info("authentication_required", path=str(request.url.path))
        return JSONResponse(
            status_code=401,
            content={
                "detail": str(exc),
                "error_type": exc.kind.value,
                "redirect_to": login_path,
            },
        )

    @app.exception_handler(SessionInvalidError)
    async def session_invalid_handler(
        request: Request, exc: SessionInvalidError
    ) -> JSONResponse:
        logger.warning("session_invalid", reason=exc.reason, path=str(request.url.path))
        return JSONResponse(
            status_code=401,
            content={
                "detail": user_message(exc.kind),
                "error_type": exc.kind.value,
                "redirect_to": login_path,
            },
        )

    @app.exception_handler(ThrottledError)
    async def throttled_handler(request: Request, exc: ThrottledError) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={
                "detail": user_message(exc.kind),
                "error_type": exc.kind.value,
                "retry_after": exc.retry_after,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(CsrfInvalidError)
    async def csrf_invalid_handler(request: Request, exc: CsrfInvalidError) -> JSONResponse:
        return JSONResponse(
            status_code=403,
            content={"detail": user_message(exc.kind), "error_type": exc.kind.value},
        )

    @app.exception_handler(PrivilegeRequiredError)
    async def privilege_required_handler(
        request: Request, exc: PrivilegeRequiredError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=403,
            content={"detail": user_message(exc.kind), "error_type": exc.kind.value},
        )

    @app.exception_handler(ValidationError)
    async def input_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("input_rejected", field=exc.field, path=str(request.url.path))
        return JSONResponse(
            status_code=400,
            content={
                "detail": str(exc),
                "error_type": exc.kind.value,
                "field": exc.field,
            },
        )

    @app.exception_handler(DecryptionError)
    async def decryption_error_handler(request: Request, exc: DecryptionError) -> JSONResponse:
        logger.error("decryption_error", path=str(request.url.path))
        return JSONResponse(
            status_code=500,
            content={"detail": user_message(exc.kind), "error_type": exc.kind.value},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.error("configuration_error", error=str(exc), path=str(request.url.path))
        return JSONResponse(
            status_code=500,
            content={"detail": user_message(exc.kind), "error_type": exc.kind.value},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Field names only; submitted values may contain passwords
        logger.warning(
            "validation_error",
            fields=[".".join(str(part) for part in err["loc"]) for err in exc.errors()],
            path=str(request.url.path),
        )
        return JSONResponse(
            status_code=422,
            content={
                "detail": "Validation error",
                "error_type": "validation_error",
                "errors": [
                    {
                        "loc": list(err["loc"]),
                        "msg": err["msg"],
                        "type": err["type"],
                    }
                    for err in exc.errors()
                ],
            },
        )


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Binds each request to a session through the application's SessionGuard.

    Before the route runs, builds a RequestContext from the request, starts
    it and stores it on `request.state.security_context`. Afterwards applies
    the security headers and session cookie the guard produced.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        guard: SessionGuard = request.app.state.guard
        settings = get_settings()

        ctx = RequestContext(
            user_agent=request.headers.get("user-agent", ""),
            source_address=get_client_ip(request, settings),
            is_secure=request.url.scheme == "https",
            session_id=request.cookies.get(guard.session_config.cookie_name),
        )
        guard.start(ctx)
        request.state.security_context = ctx

        response = await call_next(request)

        for name, value in ctx.response_headers.items():
            response.headers[name] = value

        cookie = ctx.cookie
        if cookie is not None:
            response.set_cookie(
                key=cookie.name,
                value=cookie.value,
                max_age=cookie.max_age,
                expires=cookie.expires,
                path=cookie.path,
                secure=cookie.secure,
                httponly=cookie.httponly,
                samesite=cookie.samesite,
            )
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests and responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """Log request details and response status."""
        start_time = time.perf_counter()
        clear_context()
        bind_context(request_id=uuid.uuid4().hex[:16])

        logger.info(
            "request_started",
            method=request.method,
            path=str(request.url.path),
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            duration = time.perf_counter() - start_time
            logger.error(
                "request_failed",
                method=request.method,
                path=str(request.url.path),
                error=str(exc),
                duration_ms=round(duration * 1000, 2),
            )
            raise

        duration = time.perf_counter() - start_time
        logger.info(
            "request_completed",
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        return response
