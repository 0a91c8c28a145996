"""Password hashing policy: Argon2id by default, bcrypt for legacy hashes."""

import secrets
from typing import Optional

import bcrypt
import structlog
from argon2 import PasswordHasher as Argon2PasswordHasher
from argon2 import Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from ..common.config import PasswordConfig
from ..core.exceptions import ValidationError

logger = structlog.get_logger(__name__)

ARGON2_PREFIX = "$argon2id$"
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

# bcrypt silently ignores (or newer releases reject) input past 72 bytes
BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """
    Hashes and verifies login secrets.

    New hashes use the configured scheme. Verification dispatches on the
    hash prefix, so bcrypt hashes created before a switch to Argon2id keep
    working and can be upgraded with `needs_rehash()`.

    Example:
        >>> hasher = PasswordHasher(PasswordConfig())
        >>> stored = hasher.hash("Correct1!")
        >>> hasher.verify("Correct1!", stored)
        True
    """

    def __init__(self, config: Optional[PasswordConfig] = None):
        self.config = config or PasswordConfig()
        self._argon2 = Argon2PasswordHasher(
            time_cost=self.config.argon2_time_cost,
            memory_cost=self.config.argon2_memory_cost,
            parallelism=self.config.argon2_parallelism,
            type=Type.ID,
        )
        self._dummy_hash: Optional[str] = None

    @property
    def scheme(self) -> str:
        return self.config.scheme

    def hash(self, password: str) -> str:
        """
        Hash a password with a fresh random salt.

        Args:
            password: Plain text password

        Returns:
            Self-describing hash string ($argon2id$... or $2b$...)

        Raises:
            ValidationError: If the password is empty, or too long for bcrypt
        """
        if not password:
            raise ValidationError("Password is required", field="password")

        if self.config.scheme == "bcrypt":
            password_bytes = password.encode("utf-8")
            if len(password_bytes) > BCRYPT_MAX_PASSWORD_BYTES:
                raise ValidationError(
                    "Password is too long for the bcrypt scheme", field="password"
                )
            salt = bcrypt.gensalt(rounds=self.config.bcrypt_rounds)
            return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

        return self._argon2.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        """
        Verify a password using the algorithm's own constant-time check.

        Args:
            password: Plain text password to verify
            hashed_password: Stored hash string

        Returns:
            True if the password matches, False otherwise (including for
            malformed or unknown hash formats)
        """
        if not password or not hashed_password:
            return False

        if hashed_password.startswith(ARGON2_PREFIX):
            try:
                return self._argon2.verify(hashed_password, password)
            except VerifyMismatchError:
                return False
            except (VerificationError, InvalidHashError) as e:
                logger.warning("password_verification_error", scheme="argon2id", error=str(e))
                return False

        if hashed_password.startswith(BCRYPT_PREFIXES):
            try:
                return bcrypt.checkpw(
                    password.encode("utf-8"), hashed_password.encode("utf-8")
                )
            except ValueError as e:
                logger.warning("password_verification_error", scheme="bcrypt", error=str(e))
                return False

        logger.warning("password_hash_unrecognized")
        return False

    def verify_dummy(self, password: str) -> bool:
        """
        Burn the same work as a real verification against a throwaway hash.

        Called for unknown identifiers so response timing does not reveal
        whether an account exists. Always returns False.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash(secrets.token_urlsafe(16))
        self.verify(password or "-", self._dummy_hash)
        return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """
        Check whether a stored hash should be replaced on next login.

        Returns True when the hash uses a different scheme than configured
        or weaker parameters.
        """
        if self.config.scheme == "argon2id":
            if not hashed_password.startswith(ARGON2_PREFIX):
                return True
            try:
                return self._argon2.check_needs_rehash(hashed_password)
            except (InvalidHashError, ValueError):
                return True

        if not hashed_password.startswith(BCRYPT_PREFIXES):
            return True
        try:
            rounds = int(hashed_password.split("$")[2])
        except (IndexError, ValueError):
            return True
        return rounds < self.config.bcrypt_rounds
