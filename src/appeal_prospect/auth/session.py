"""Session records and the per-request context the guard operates on."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class Session(BaseModel):
    """
    Server-side session state.

    Only SessionGuard writes `fingerprint` and `source_address`, at login.
    CSRF token state is managed by CsrfTokenManager.
    """

    subject_id: Optional[int] = Field(default=None, description="Signed-in subject")
    is_privileged: bool = Field(default=False, description="Binary privilege flag")
    fingerprint: Optional[str] = Field(
        default=None, description="SHA-256 of the user-agent seen at login"
    )
    source_address: Optional[str] = Field(
        default=None, description="Client address seen at login"
    )
    created_at: datetime
    last_activity_at: datetime
    last_rotated_at: datetime
    csrf_token: Optional[str] = None
    csrf_issued_at: Optional[datetime] = None
    rotated_to: Optional[str] = Field(
        default=None, description="Replacement id when this record is a rotation alias"
    )

    @property
    def is_authenticated(self) -> bool:
        return self.subject_id is not None

    def __repr__(self) -> str:
        """Safe representation without the CSRF token."""
        return (
            f"Session(subject_id={self.subject_id!r}, "
            f"is_privileged={self.is_privileged!r}, "
            f"last_activity_at={self.last_activity_at.isoformat()})"
        )


@dataclass
class SessionCookie:
    """Instruction for the HTTP layer to set or expire the session cookie."""

    name: str
    value: str
    path: str = "/"
    httponly: bool = True
    samesite: str = "lax"
    secure: bool = False
    max_age: Optional[int] = None
    expires: Optional[datetime] = None

    @property
    def is_deletion(self) -> bool:
        return self.max_age == 0


@dataclass
class RequestContext:
    """
    Per-request binding between an HTTP request and the session guard.

    The HTTP layer fills the request fields, calls SessionGuard.start(),
    then applies `response_headers` and `cookie` to the response.
    """

    user_agent: str = ""
    source_address: str = ""
    is_secure: bool = False
    session_id: Optional[str] = None
    session: Optional[Session] = None
    response_headers: Dict[str, str] = field(default_factory=dict)
    cookie: Optional[SessionCookie] = None
    revoked_reason: Optional[str] = None
    started: bool = False

    @property
    def subject_id(self) -> Optional[int]:
        return self.session.subject_id if self.session else None
