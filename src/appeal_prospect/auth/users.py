"""User directory contract and an in-memory implementation."""

from datetime import datetime
from itertools import count
from threading import Lock
from typing import Dict, Optional, Protocol

import structlog
from pydantic import BaseModel, Field

from ..common.clock import Clock, utcnow
from ..core.exceptions import ValidationError
from .passwords import PasswordHasher
from .policy import normalize_identifier, validate_email, validate_password_strength

logger = structlog.get_logger(__name__)


class UserRecord(BaseModel):
    """Stored account data the security core needs for sign-in."""

    subject_id: int
    identifier: str = Field(description="Normalized email address")
    password_hash: str
    display_name: str = ""
    is_privileged: bool = False
    created_at: datetime
    last_login_at: Optional[datetime] = None

    def __repr__(self) -> str:
        """Safe representation without the password hash."""
        return f"UserRecord(subject_id={self.subject_id!r}, is_privileged={self.is_privileged!r})"


class UserDirectory(Protocol):
    """Lookup of subjects by login identifier."""

    def get_by_identifier(self, identifier: str) -> Optional[UserRecord]:
        ...

    def register(
        self,
        email: str,
        password: str,
        display_name: str = "",
        is_privileged: bool = False,
    ) -> UserRecord:
        ...

    def record_login(self, subject_id: int) -> None:
        ...

    def update_password_hash(self, subject_id: int, password_hash: str) -> None:
        ...


class InMemoryUserDirectory:
    """
    Thread-safe in-memory UserDirectory with registration.

    Example:
        >>> users = InMemoryUserDirectory(PasswordHasher())
        >>> user = users.register("a@b.com", "Correct1!", "Alice")
        >>> users.get_by_identifier("A@B.com").subject_id == user.subject_id
        True
    """

    def __init__(self, hasher: PasswordHasher, clock: Clock = utcnow):
        self._hasher = hasher
        self._clock = clock
        self._users: Dict[str, UserRecord] = {}
        self._ids = count(1)
        self._lock = Lock()

    def register(
        self,
        email: str,
        password: str,
        display_name: str = "",
        is_privileged: bool = False,
    ) -> UserRecord:
        """
        Create an account.

        Args:
            email: Login identifier
            password: Plain text password (must satisfy the strength policy)
            display_name: Name shown in the UI
            is_privileged: Grant the privileged flag

        Returns:
            The stored UserRecord

        Raises:
            ValidationError: If input fails policy or the email is taken
        """
        identifier = validate_email(email)
        validate_password_strength(password)
        password_hash = self._hasher.hash(password)

        with self._lock:
            if identifier in self._users:
                raise ValidationError(
                    "An account with this email address already exists", field="email"
                )
            user = UserRecord(
                subject_id=next(self._ids),
                identifier=identifier,
                password_hash=password_hash,
                display_name=display_name.strip(),
                is_privileged=is_privileged,
                created_at=self._clock(),
            )
            self._users[identifier] = user

        logger.info("user_registered", subject_id=user.subject_id)
        return user.model_copy()

    def get_by_identifier(self, identifier: str) -> Optional[UserRecord]:
        with self._lock:
            user = self._users.get(normalize_identifier(identifier))
            return user.model_copy() if user else None

    def record_login(self, subject_id: int) -> None:
        with self._lock:
            for user in self._users.values():
                if user.subject_id == subject_id:
                    user.last_login_at = self._clock()
                    return

    def update_password_hash(self, subject_id: int, password_hash: str) -> None:
        with self._lock:
            for user in self._users.values():
                if user.subject_id == subject_id:
                    user.password_hash = password_hash
                    return
