"""Core exceptions shared across the security core."""

from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    CsrfInvalidError,
    DecryptionError,
    ErrorKind,
    PrivilegeRequiredError,
    SecurityError,
    SessionInvalidError,
    ThrottledError,
    ValidationError,
    user_message,
)

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "CsrfInvalidError",
    "DecryptionError",
    "ErrorKind",
    "PrivilegeRequiredError",
    "SecurityError",
    "SessionInvalidError",
    "ThrottledError",
    "ValidationError",
    "user_message",
]
