"""Per-session anti-forgery tokens."""

import hmac
import secrets
from datetime import timedelta
from typing import Optional

import structlog

from ..common.clock import Clock, utcnow
from ..common.config import CsrfConfig
from .session import Session

logger = structlog.get_logger(__name__)

TOKEN_BYTES = 32  # 256 bits


class CsrfTokenManager:
    """
    Issues, rotates and validates the CSRF token stored on a Session.

    Token state lives on the Session record; SessionGuard persists it
    through the session store. Rotation discards the previous token
    immediately, so a form rendered before rotation fails validation.

    Example:
        >>> manager = CsrfTokenManager()
        >>> token = manager.issue(session)
        >>> manager.validate(session, token)
        True
    """

    def __init__(self, config: Optional[CsrfConfig] = None, clock: Clock = utcnow):
        self.config = config or CsrfConfig()
        self._clock = clock

    @property
    def max_age(self) -> timedelta:
        return timedelta(seconds=self.config.max_age_seconds)

    def _new_token(self, session: Session) -> str:
        session.csrf_token = secrets.token_hex(TOKEN_BYTES)
        session.csrf_issued_at = self._clock()
        return session.csrf_token

    def is_expired(self, session: Session) -> bool:
        """Return True if the session's token is older than the max age."""
        if session.csrf_issued_at is None:
            return True
        return self._clock() - session.csrf_issued_at > self.max_age

    def issue(self, session: Session) -> str:
        """
        Return the session's token, generating one if none exists.

        Args:
            session: Session to read or update

        Returns:
            Hex-encoded 256-bit token
        """
        if session.csrf_token is None:
            return self._new_token(session)
        return session.csrf_token

    def rotate(self, session: Session) -> str:
        """
        Replace the token if it is missing or older than the max age.

        Returns:
            The current (possibly new) token
        """
        if session.csrf_token is None or self.is_expired(session):
            token = self._new_token(session)
            logger.debug("csrf_token_rotated")
            return token
        return session.csrf_token

    def reset(self, session: Session) -> None:
        """Drop the token so the next issue() generates a fresh one."""
        session.csrf_token = None
        session.csrf_issued_at = None

    def validate(self, session: Optional[Session], submitted: Optional[str]) -> bool:
        """
        Check a submitted token against the session's token.

        Missing, empty, expired and mismatched tokens all return False.

        Args:
            session: Session holding the expected token
            submitted: Token received with the request

        Returns:
            True only for a live, matching token
        """
        if session is None or not session.csrf_token or not submitted:
            return False
        if self.is_expired(session):
            return False
        return hmac.compare_digest(
            session.csrf_token.encode("utf-8"), submitted.encode("utf-8")
        )
