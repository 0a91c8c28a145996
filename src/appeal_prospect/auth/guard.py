"""Session lifecycle orchestration: start, validate, login, logout."""

import hashlib
import hmac
import ipaddress
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import structlog

from ..common.clock import Clock, utcnow
from ..common.config import Config, SessionConfig
from ..core.exceptions import (
    AuthenticationError,
    CsrfInvalidError,
    PrivilegeRequiredError,
    SessionInvalidError,
    ThrottledError,
)
from .audit import AuditEvent, SecurityAuditor
from .csrf import CsrfTokenManager
from .passwords import PasswordHasher
from .session import RequestContext, Session, SessionCookie
from .stores import InMemorySessionStore, SessionStore
from .throttle import LoginThrottle, hash_identifier
from .users import InMemoryUserDirectory, UserDirectory

logger = structlog.get_logger(__name__)

SESSION_ID_BYTES = 32
COOKIE_EXPIRED_AT = datetime(1970, 1, 1, tzinfo=timezone.utc)

REASON_FINGERPRINT = "fingerprint_mismatch"
REASON_TIMEOUT = "timeout"


def compute_fingerprint(user_agent: str) -> str:
    """Hash a user-agent string into the stored session fingerprint."""
    return hashlib.sha256(user_agent.encode("utf-8")).hexdigest()


def security_headers(config: SessionConfig, is_secure: bool) -> Dict[str, str]:
    """
    Build the security response headers sent with every request.

    Args:
        config: Session configuration (CSP and HSTS settings)
        is_secure: Whether the request arrived over TLS

    Returns:
        Header name to value mapping
    """
    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": config.content_security_policy,
    }
    if is_secure and config.hsts_enabled:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers


class SessionGuard:
    """
    Top-level orchestrator for authenticated state.

    Binds a RequestContext to a persisted Session, enforces fingerprint and
    idle-timeout checks, and runs the login flow through LoginThrottle and
    PasswordHasher. Every collaborator is injectable; defaults are the
    in-memory implementations.

    Example:
        >>> guard = SessionGuard()
        >>> ctx = RequestContext(user_agent="Mozilla/5.0", source_address="10.0.0.5")
        >>> guard.start(ctx)
        >>> guard.login(ctx, "a@b.com", "Correct1!")
        >>> guard.require_authenticated(ctx).subject_id
        1
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        session_store: Optional[SessionStore] = None,
        csrf: Optional[CsrfTokenManager] = None,
        throttle: Optional[LoginThrottle] = None,
        hasher: Optional[PasswordHasher] = None,
        users: Optional[UserDirectory] = None,
        auditor: Optional[SecurityAuditor] = None,
        clock: Clock = utcnow,
    ):
        self.config = config or Config()
        self._clock = clock
        self.sessions: SessionStore = (
            session_store if session_store is not None else InMemorySessionStore(clock)
        )
        self.csrf = csrf or CsrfTokenManager(self.config.csrf, clock)
        self.throttle = throttle or LoginThrottle(self.config.throttle, clock=clock)
        self.hasher = hasher or PasswordHasher(self.config.passwords)
        self.users: UserDirectory = (
            users if users is not None else InMemoryUserDirectory(self.hasher, clock)
        )
        self.auditor = auditor or SecurityAuditor(clock=clock)

    @property
    def session_config(self) -> SessionConfig:
        return self.config.session

    @property
    def _store_ttl(self) -> int:
        # Kept past the idle limit so start() can report the timeout
        return self.session_config.lifetime_seconds * 2

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    def start(self, ctx: RequestContext) -> Session:
        """
        Bind the request to a session. Idempotent per request.

        Applies security headers, loads or creates the session, runs the
        fingerprint and timeout checks for signed-in sessions, rotates the
        session identifier when due and makes sure a CSRF token exists.

        Args:
            ctx: Request context filled by the HTTP layer

        Returns:
            The active session (anonymous if a check forced a logout)
        """
        if ctx.started and ctx.session is not None:
            return ctx.session

        ctx.response_headers.update(security_headers(self.session_config, ctx.is_secure))
        now = self._clock()

        session = self._load(ctx) if ctx.session_id else None
        if session is None:
            self._new_anonymous(ctx, now)
        else:
            ctx.session = session
            if session.is_authenticated:
                reason = None
                if not self.validate(ctx):
                    reason = REASON_FINGERPRINT
                elif self.timeout(ctx):
                    reason = REASON_TIMEOUT

                if reason is not None:
                    self.auditor.record(
                        AuditEvent.SESSION_SECURITY_VIOLATION, ctx, reason=reason
                    )
                    logger.warning(
                        "session_revoked", subject_id=session.subject_id, reason=reason
                    )
                    self.logout(ctx)
                    ctx.revoked_reason = reason
                    self._new_anonymous(ctx, now)

        session = ctx.session
        session.last_activity_at = now
        rotation_due = now - session.last_rotated_at > timedelta(
            seconds=self.session_config.rotation_interval_seconds
        )
        if session.is_authenticated and rotation_due:
            self._rotate_id(ctx, keep_alias=True)

        self.csrf.rotate(session)
        self._persist(ctx)
        ctx.started = True
        return session

    def validate(self, ctx: RequestContext) -> bool:
        """
        Check that the request matches the client the session was issued to.

        The user-agent fingerprint must match exactly. Source addresses pass
        when equal or within the configured IPv4/IPv6 tolerance prefix. A
        session with no recorded address skips the address comparison.

        Returns:
            True if the request may continue with this session
        """
        session = ctx.session
        if session is None or not session.fingerprint:
            return False

        if not hmac.compare_digest(session.fingerprint, compute_fingerprint(ctx.user_agent)):
            logger.info("session_fingerprint_mismatch", subject_id=session.subject_id)
            return False

        if not session.source_address:
            return True

        if not self._same_network(session.source_address, ctx.source_address):
            logger.info("session_address_mismatch", subject_id=session.subject_id)
            return False
        return True

    def timeout(self, ctx: RequestContext) -> bool:
        """Return True if the session has been idle longer than its lifetime."""
        session = ctx.session
        if session is None:
            return False
        idle = self._clock() - session.last_activity_at
        return idle > timedelta(seconds=self.session_config.lifetime_seconds)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, ctx: RequestContext, identifier: str, secret: str) -> Session:
        """
        Authenticate a subject and bind it to the request's session.

        Args:
            ctx: Request context
            identifier: Login identifier (email)
            secret: Plain text password

        Returns:
            The authenticated session, under a freshly issued identifier

        Raises:
            ThrottledError: If the identifier is locked out
            AuthenticationError: If the credentials are wrong
        """
        self.start(ctx)
        identifier_hash = hash_identifier(identifier)[:12]

        decision = self.throttle.check(identifier)
        if not decision.allowed:
            self.auditor.record(
                AuditEvent.RATE_LIMIT_EXCEEDED,
                ctx,
                identifier_hash=identifier_hash,
                retry_after=decision.retry_after,
            )
            raise ThrottledError(decision.retry_after)

        user = self.users.get_by_identifier(identifier)
        if user is None:
            # Same cost as a real verification so timing does not reveal existence
            verified = self.hasher.verify_dummy(secret)
        else:
            verified = self.hasher.verify(secret, user.password_hash)

        if not verified:
            counter = self.throttle.record_failure(identifier)
            self.auditor.record(
                AuditEvent.LOGIN_FAILED,
                ctx,
                identifier_hash=identifier_hash,
                attempt_count=counter.count,
            )
            raise AuthenticationError()

        self.throttle.clear(identifier)
        self._rotate_id(ctx)

        session = ctx.session
        session.subject_id = user.subject_id
        session.is_privileged = user.is_privileged
        session.fingerprint = compute_fingerprint(ctx.user_agent)
        session.source_address = ctx.source_address or None
        self.csrf.reset(session)
        self.csrf.issue(session)
        self._persist(ctx)

        self.users.record_login(user.subject_id)
        if self.hasher.needs_rehash(user.password_hash):
            self.users.update_password_hash(user.subject_id, self.hasher.hash(secret))
            logger.info("password_rehashed", subject_id=user.subject_id)

        self.auditor.record(AuditEvent.LOGIN_SUCCESS, ctx, subject_id=user.subject_id)
        return session

    def logout(self, ctx: RequestContext) -> None:
        """
        End the session: destroy the record and expire the cookie.

        Args:
            ctx: Request context
        """
        subject_id = ctx.subject_id
        if ctx.session_id:
            self.sessions.destroy(ctx.session_id)

        ctx.session = None
        ctx.session_id = None
        ctx.cookie = SessionCookie(
            name=self.session_config.cookie_name,
            value="",
            path=self.session_config.cookie_path,
            secure=ctx.is_secure,
            max_age=0,
            expires=COOKIE_EXPIRED_AT,
        )
        self.auditor.record(AuditEvent.LOGOUT, ctx, subject_id=subject_id)

    def regenerate(self, ctx: RequestContext) -> str:
        """
        Move the session to a new identifier, discarding the old one.

        Returns:
            The new session id
        """
        self.start(ctx)
        self._rotate_id(ctx)
        self._persist(ctx)
        return ctx.session_id

    def require_authenticated(self, ctx: RequestContext) -> Session:
        """
        Return the signed-in session or raise.

        Raises:
            SessionInvalidError: If this request's session was revoked by a check
            AuthenticationError: If no subject is signed in
        """
        session = self.start(ctx)
        if session.is_authenticated:
            return session
        if ctx.revoked_reason:
            raise SessionInvalidError(reason=ctx.revoked_reason)
        raise AuthenticationError("Please sign in to continue.")

    def require_privileged(self, ctx: RequestContext) -> Session:
        """
        Return the signed-in session if it carries the privileged flag.

        Raises:
            PrivilegeRequiredError: If the subject is not privileged
        """
        session = self.require_authenticated(ctx)
        if not session.is_privileged:
            logger.warning("privilege_denied", subject_id=session.subject_id)
            raise PrivilegeRequiredError()
        return session

    # ------------------------------------------------------------------
    # CSRF
    # ------------------------------------------------------------------

    def issue_csrf(self, ctx: RequestContext) -> str:
        """Return the session's CSRF token, issuing or rotating as needed."""
        session = self.start(ctx)
        token = self.csrf.rotate(session)
        self._persist(ctx)
        return token

    def validate_csrf(self, ctx: RequestContext, token: Optional[str]) -> bool:
        """Return True if the token matches the session's live CSRF token."""
        session = self.start(ctx)
        return self.csrf.validate(session, token)

    def verify_csrf(self, ctx: RequestContext, token: Optional[str]) -> None:
        """
        Validate a CSRF token, auditing and raising on failure.

        Raises:
            CsrfInvalidError: If the token is missing, expired or wrong
        """
        if not self.validate_csrf(ctx, token):
            self.auditor.record(
                AuditEvent.CSRF_INVALID, ctx, submitted=bool(token)
            )
            raise CsrfInvalidError()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new_anonymous(self, ctx: RequestContext, now: datetime) -> None:
        ctx.session_id = secrets.token_urlsafe(SESSION_ID_BYTES)
        ctx.session = Session(created_at=now, last_activity_at=now, last_rotated_at=now)
        logger.debug("session_created")

    def _load(self, ctx: RequestContext) -> Optional[Session]:
        session = self.sessions.get(ctx.session_id)
        if session is None or session.rotated_to is None:
            return session
        # Alias left by a periodic rotation; resolve to the live record
        current = self.sessions.get(session.rotated_to)
        if current is None or current.rotated_to is not None:
            return None
        ctx.session_id = session.rotated_to
        return current

    def _rotate_id(self, ctx: RequestContext, keep_alias: bool = False) -> None:
        """
        Move the session to a fresh id.

        With `keep_alias`, the old id resolves to the new one for
        `rotation_grace_seconds` so concurrent requests still carrying the old
        cookie keep the session. Otherwise the old id is destroyed at once.
        """
        old_id = ctx.session_id
        new_id = secrets.token_urlsafe(SESSION_ID_BYTES)
        ctx.session_id = new_id
        ctx.session.last_rotated_at = self._clock()

        grace = self.session_config.rotation_grace_seconds
        if old_id and keep_alias and grace > 0:
            self.sessions.set(new_id, ctx.session, self._store_ttl)
            alias = ctx.session.model_copy(update={"rotated_to": new_id})
            self.sessions.set(old_id, alias, grace)
        elif old_id:
            self.sessions.destroy(old_id)
        logger.debug("session_rotated", subject_id=ctx.subject_id)

    def _persist(self, ctx: RequestContext) -> None:
        self.sessions.set(ctx.session_id, ctx.session, self._store_ttl)
        ctx.cookie = SessionCookie(
            name=self.session_config.cookie_name,
            value=ctx.session_id,
            path=self.session_config.cookie_path,
            secure=ctx.is_secure,
        )

    @staticmethod
    def _network_prefix(address, config: SessionConfig) -> int:
        if address.version == 4:
            return config.ipv4_tolerance_prefix
        return config.ipv6_tolerance_prefix

    def _same_network(self, stored: str, current: str) -> bool:
        if stored == current:
            return True
        try:
            stored_ip = ipaddress.ip_address(stored)
            current_ip = ipaddress.ip_address(current)
        except ValueError:
            return False
        if stored_ip.version != current_ip.version:
            return False
        prefix = self._network_prefix(stored_ip, self.session_config)
        network = ipaddress.ip_network(f"{stored_ip}/{prefix}", strict=False)
        return current_ip in network
