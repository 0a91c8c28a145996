"""FastAPI dependency injection for the session guard and secret settings."""

from typing import Optional

import structlog
from fastapi import Depends, Request

from appeal_prospect.auth import RequestContext, Session, SessionGuard
from appeal_prospect.core.secret_settings import SecretSettings

from .settings import APISettings, get_settings

logger = structlog.get_logger(__name__)


def get_api_settings() -> APISettings:
    """
    Dependency that provides API settings.

    Returns:
        APISettings instance (cached)
    """
    return get_settings()


def get_guard(request: Request) -> SessionGuard:
    """Dependency that provides the application's SessionGuard."""
    return request.app.state.guard


def get_secret_settings(request: Request) -> SecretSettings:
    """Dependency that provides the application's SecretSettings."""
    return request.app.state.secret_settings


def get_request_context(
    request: Request,
    guard: SessionGuard = Depends(get_guard),
) -> RequestContext:
    """
    Dependency that provides the request's security context.

    The context is created and started by SessionMiddleware.

    Returns:
        RequestContext bound to this request
    """
    ctx: Optional[RequestContext] = getattr(request.state, "security_context", None)
    if ctx is None:
        # Middleware not installed (e.g. a bare router under test)
        ctx = RequestContext(
            user_agent=request.headers.get("user-agent", ""),
            source_address=request.client.host if request.client else "",
            is_secure=request.url.scheme == "https",
        )
        guard.start(ctx)
        request.state.security_context = ctx
    return ctx


def require_authenticated(
    ctx: RequestContext = Depends(get_request_context),
    guard: SessionGuard = Depends(get_guard),
) -> Session:
    """
    Dependency that requires a signed-in session.

    Raises:
        AuthenticationError: If nobody is signed in
        SessionInvalidError: If the session was revoked on this request

    Example:
        @router.get("/protected")
        async def protected_route(session: Session = Depends(require_authenticated)):
            return {"subject_id": session.subject_id}
    """
    session = guard.require_authenticated(ctx)
    logger.debug("request_authenticated", subject_id=session.subject_id)
    return session


def require_privileged(
    ctx: RequestContext = Depends(get_request_context),
    guard: SessionGuard = Depends(get_guard),
) -> Session:
    """
    Dependency that requires a signed-in session with the privileged flag.

    Raises:
        PrivilegeRequiredError: If the subject is not privileged
    """
    return guard.require_privileged(ctx)


async def verify_csrf(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    guard: SessionGuard = Depends(get_guard),
) -> None:
    """
    Dependency that rejects state-changing requests without a valid CSRF token.

    The token is read from the X-CSRF-Token header, falling back to a
    `csrf_token` field in a JSON body. Form-encoded bodies are not parsed,
    so a form post must send the header; a `csrf_token` form field alone is
    rejected.

    Raises:
        CsrfInvalidError: If the token is missing, expired or wrong
    """
    csrf_config = guard.config.csrf
    token = request.headers.get(csrf_config.header_name)

    if not token and request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get(csrf_config.field_name), str):
            token = body[csrf_config.field_name]

    guard.verify_csrf(ctx, token)
