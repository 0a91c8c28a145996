"""Exceptions for the security core.

Every exception carries an ErrorKind so boundaries can format a generic
message with `user_message()` instead of echoing internal detail.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of security failure kinds."""

    AUTHENTICATION = "authentication"
    THROTTLED = "throttled"
    SESSION_INVALID = "session_invalid"
    CSRF_INVALID = "csrf_invalid"
    PRIVILEGE_REQUIRED = "privilege_required"
    DECRYPTION = "decryption"
    CONFIGURATION = "configuration"
    VALIDATION = "validation"


class SecurityError(Exception):
    """Base exception for security core errors."""

    kind: ErrorKind = ErrorKind.AUTHENTICATION

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or user_message(self.kind))


class AuthenticationError(SecurityError):
    """Raised for bad credentials or a missing sign-in.

    The message never says whether the identifier exists.
    """

    kind = ErrorKind.AUTHENTICATION


class ThrottledError(SecurityError):
    """Raised when an identifier is locked out."""

    kind = ErrorKind.THROTTLED

    def __init__(self, retry_after: int, message: Optional[str] = None):
        super().__init__(message)
        self.retry_after = retry_after


class SessionInvalidError(SecurityError):
    """Raised when a session fails fingerprint or timeout checks."""

    kind = ErrorKind.SESSION_INVALID

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class CsrfInvalidError(SecurityError):
    """Raised for a missing, expired or mismatched anti-forgery token."""

    kind = ErrorKind.CSRF_INVALID


class PrivilegeRequiredError(SecurityError):
    """Raised when a signed-in subject lacks the privileged flag."""

    kind = ErrorKind.PRIVILEGE_REQUIRED


class DecryptionError(SecurityError):
    """Raised when a stored secret fails authentication or decoding."""

    kind = ErrorKind.DECRYPTION


class ConfigurationError(SecurityError):
    """Raised at startup when required key material is missing or malformed."""

    kind = ErrorKind.CONFIGURATION


class ValidationError(SecurityError):
    """Raised when user input fails an input policy."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def user_message(kind: ErrorKind) -> str:
    """
    Return the generic user-facing message for an error kind.

    Args:
        kind: The ErrorKind to describe

    Returns:
        A message that is safe to show to an unauthenticated client
    """
    match kind:
        case ErrorKind.AUTHENTICATION:
            return "Invalid email address or password."
        case ErrorKind.THROTTLED:
            return "Too many login attempts. Please try again later."
        case ErrorKind.SESSION_INVALID:
            return "Your session has expired. Please sign in again."
        case ErrorKind.CSRF_INVALID:
            return "Invalid security token. Please try again."
        case ErrorKind.PRIVILEGE_REQUIRED:
            return "You do not have permission to access this page."
        case ErrorKind.DECRYPTION:
            return "A stored setting could not be read."
        case ErrorKind.CONFIGURATION:
            return "The service is not configured correctly."
        case ErrorKind.VALIDATION:
            return "The submitted data is invalid."
