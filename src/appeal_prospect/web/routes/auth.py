"""Authentication routes for login, logout, registration and CSRF tokens."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from appeal_prospect.auth import RequestContext, Session, SessionGuard

from ..dependencies import (
    get_api_settings,
    get_guard,
    get_request_context,
    require_authenticated,
    verify_csrf,
)
from ..schemas import (
    AUTH_ERROR_RESPONSES,
    CsrfTokenResponse,
    ErrorDetail,
    LoginRequest,
    LogoutResponse,
    RegisterRequest,
    SessionResponse,
    UserResponse,
)
from ..settings import APISettings

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get(
    "/csrf",
    response_model=CsrfTokenResponse,
    summary="Get the session's CSRF token",
)
async def get_csrf_token(
    ctx: RequestContext = Depends(get_request_context),
    guard: SessionGuard = Depends(get_guard),
) -> CsrfTokenResponse:
    """
    Return the anti-forgery token for the current session.

    Send it back in the X-CSRF-Token header (or a `csrf_token` JSON field)
    with every state-changing request.
    """
    return CsrfTokenResponse(csrf_token=guard.issue_csrf(ctx))


@router.post(
    "/login",
    response_model=SessionResponse,
    summary="Sign in",
    dependencies=[Depends(verify_csrf)],
    responses={
        401: {"model": ErrorDetail, "description": "Invalid credentials"},
        403: {"model": ErrorDetail, "description": "Invalid CSRF token"},
        429: {"model": ErrorDetail, "description": "Too many failed attempts"},
    },
)
async def login(
    login_request: LoginRequest,
    ctx: RequestContext = Depends(get_request_context),
    guard: SessionGuard = Depends(get_guard),
) -> SessionResponse:
    """
    Authenticate and bind the subject to the session cookie.

    The session identifier and CSRF token are replaced on success; use the
    returned token for subsequent requests.

    Throttled: 5 failed attempts per email address lock it for 15 minutes.
    """
    session = guard.login(ctx, login_request.email, login_request.password)
    logger.info("login_successful", subject_id=session.subject_id)
    return SessionResponse(
        subject_id=session.subject_id,
        is_privileged=session.is_privileged,
        csrf_token=session.csrf_token,
    )


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Sign out",
    dependencies=[Depends(verify_csrf)],
    responses={403: {"model": ErrorDetail, "description": "Invalid CSRF token"}},
)
async def logout(
    ctx: RequestContext = Depends(get_request_context),
    guard: SessionGuard = Depends(get_guard),
    settings: APISettings = Depends(get_api_settings),
) -> LogoutResponse:
    """Destroy the session and expire the session cookie."""
    guard.logout(ctx)
    return LogoutResponse(redirect_to=settings.login_path)


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    dependencies=[Depends(verify_csrf)],
    responses={
        400: {"model": ErrorDetail, "description": "Input rejected by policy or email taken"},
        403: {"model": ErrorDetail, "description": "Invalid CSRF token"},
    },
)
async def register(
    register_request: RegisterRequest,
    guard: SessionGuard = Depends(get_guard),
    settings: APISettings = Depends(get_api_settings),
) -> UserResponse:
    """
    Register a new, unprivileged account.

    Passwords need 8-128 characters with a lowercase letter, an uppercase
    letter and a digit.
    """
    if not settings.registration_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    user = guard.users.register(
        register_request.email,
        register_request.password,
        register_request.display_name,
    )
    return UserResponse(
        subject_id=user.subject_id,
        email=user.identifier,
        display_name=user.display_name,
        created_at=user.created_at,
    )


@router.get(
    "/me",
    response_model=SessionResponse,
    summary="Current session",
    responses=AUTH_ERROR_RESPONSES,
)
async def get_current_session(
    session: Session = Depends(require_authenticated),
) -> SessionResponse:
    """Return the signed-in subject and its CSRF token."""
    return SessionResponse(
        subject_id=session.subject_id,
        is_privileged=session.is_privileged,
        csrf_token=session.csrf_token,
    )
