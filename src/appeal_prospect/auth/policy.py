"""Input policies for login identifiers, passwords and provider API keys."""

import re

from ..core.exceptions import ValidationError

MAX_EMAIL_LENGTH = 255
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

_EMAIL_RE = re.compile(
    r"^[A-Za-z0-9.!#$%&*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$"
)
_UNSAFE_EMAIL_CHARS = re.compile(r"[<>\"']")
_UNSAFE_KEY_CHARS = re.compile(r"[<>\"'\0]")

# Minimum key lengths per provider; prefix checks live in validate_api_key
API_KEY_MIN_LENGTHS = {
    "openai": 20,
    "perplexity": 10,
}


def normalize_identifier(identifier: str) -> str:
    """Trim and lowercase a login identifier."""
    return identifier.strip().lower()


def validate_email(email: str) -> str:
    """
    Validate an email address used as a login identifier.

    Args:
        email: Raw email input

    Returns:
        The normalized (trimmed, lowercased) address

    Raises:
        ValidationError: If the address is missing, too long or malformed
    """
    email = email.strip()
    if not email:
        raise ValidationError("Email address is required", field="email")
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError("Email address is too long", field="email")
    if _UNSAFE_EMAIL_CHARS.search(email):
        raise ValidationError("Email contains invalid characters", field="email")
    local_part = email.split("@", 1)[0]
    if not _EMAIL_RE.match(email) or ".." in email or local_part.startswith(".") or local_part.endswith("."):
        raise ValidationError("Please enter a valid email address", field="email")
    return normalize_identifier(email)


def validate_password_strength(password: str) -> str:
    """
    Enforce the password policy for new passwords.

    Requires 8-128 characters with at least one lowercase letter, one
    uppercase letter and one digit.

    Raises:
        ValidationError: Describing the first rule that failed
    """
    if not password:
        raise ValidationError("Password is required", field="password")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            field="password",
        )
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password is too long (max {MAX_PASSWORD_LENGTH} characters)",
            field="password",
        )
    if not re.search(r"[a-z]", password):
        raise ValidationError(
            "Password must contain at least one lowercase letter", field="password"
        )
    if not re.search(r"[A-Z]", password):
        raise ValidationError(
            "Password must contain at least one uppercase letter", field="password"
        )
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one number", field="password")
    return password


def validate_api_key(key: str, provider: str) -> str:
    """
    Check the shape of a third-party API key before it is stored.

    Args:
        key: Raw key input
        provider: Provider name, e.g. "openai" or "perplexity"

    Returns:
        The trimmed key

    Raises:
        ValidationError: If the key is empty, malformed or contains unsafe characters
    """
    key = key.strip()
    if not key:
        raise ValidationError("API key is required", field="api_key")

    if provider == "openai" and not key.startswith("sk-"):
        raise ValidationError('OpenAI API key must start with "sk-"', field="api_key")

    min_length = API_KEY_MIN_LENGTHS.get(provider)
    if min_length is not None and len(key) < min_length:
        raise ValidationError(f"{provider} API key appears to be invalid", field="api_key")

    if _UNSAFE_KEY_CHARS.search(key):
        raise ValidationError("API key contains invalid characters", field="api_key")

    return key
