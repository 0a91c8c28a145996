"""Authentication, session and secret-protection components."""

from .audit import (
    AuditEvent,
    AuditSink,
    InMemoryAuditSink,
    LoggingAuditSink,
    SecurityAuditor,
)
from .csrf import CsrfTokenManager
from .guard import SessionGuard, compute_fingerprint, security_headers
from .passwords import PasswordHasher
from .policy import (
    normalize_identifier,
    validate_api_key,
    validate_email,
    validate_password_strength,
)
from .session import RequestContext, Session, SessionCookie
from .stores import (
    CounterStore,
    InMemoryCounterStore,
    InMemorySessionStore,
    SessionStore,
    ThrottleCounter,
)
from .throttle import LoginThrottle, ThrottleDecision, hash_identifier
from .users import InMemoryUserDirectory, UserDirectory, UserRecord
from .vault import CredentialVault, derive_key, generate_master_key

__all__ = [
    # Audit
    "AuditEvent",
    "AuditSink",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "SecurityAuditor",
    # CSRF
    "CsrfTokenManager",
    # Guard
    "SessionGuard",
    "compute_fingerprint",
    "security_headers",
    # Passwords
    "PasswordHasher",
    # Input policy
    "normalize_identifier",
    "validate_api_key",
    "validate_email",
    "validate_password_strength",
    # Session
    "RequestContext",
    "Session",
    "SessionCookie",
    # Stores
    "CounterStore",
    "InMemoryCounterStore",
    "InMemorySessionStore",
    "SessionStore",
    "ThrottleCounter",
    # Throttle
    "LoginThrottle",
    "ThrottleDecision",
    "hash_identifier",
    # Users
    "InMemoryUserDirectory",
    "UserDirectory",
    "UserRecord",
    # Vault
    "CredentialVault",
    "derive_key",
    "generate_master_key",
]
