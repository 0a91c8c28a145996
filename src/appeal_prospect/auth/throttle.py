"""Brute-force login throttling keyed by hashed login identifier."""

import hashlib
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import structlog

from ..common.clock import Clock, utcnow
from ..common.config import ThrottleConfig
from .policy import normalize_identifier
from .stores import CounterStore, InMemoryCounterStore, ThrottleCounter

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ThrottleDecision:
    """Outcome of a throttle check."""

    allowed: bool
    retry_after: int = 0


def hash_identifier(identifier: str) -> str:
    """Hash a login identifier so raw PII never becomes a storage key."""
    normalized = normalize_identifier(identifier)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class LoginThrottle:
    """
    Counts failed logins per identifier and enforces a lockout.

    Once `max_attempts` failures accumulate within the counter window, the
    identifier is locked for `lockout_seconds`. The counter store's atomic
    increment keeps concurrent failures from racing past the threshold.

    Attributes:
        config: Threshold, window and lockout durations
        store: Counter store providing atomic increment-with-TTL

    Example:
        >>> throttle = LoginThrottle()
        >>> decision = throttle.check("a@b.com")
        >>> if not decision.allowed:
        ...     raise ThrottledError(decision.retry_after)
        >>> # On failed login:
        >>> throttle.record_failure("a@b.com")
    """

    def __init__(
        self,
        config: Optional[ThrottleConfig] = None,
        store: Optional[CounterStore] = None,
        clock: Clock = utcnow,
    ):
        self.config = config or ThrottleConfig()
        self._clock = clock
        self.store: CounterStore = store if store is not None else InMemoryCounterStore(clock)

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    def check(self, identifier: str) -> ThrottleDecision:
        """
        Decide whether a login attempt for an identifier may proceed.

        An expired lockout resets the counter as a side effect.

        Args:
            identifier: Login identifier (email)

        Returns:
            ThrottleDecision with retry_after in whole seconds when denied
        """
        key = hash_identifier(identifier)
        counter = self.store.get(key)

        if counter is None or counter.count < self.config.max_attempts:
            return ThrottleDecision(allowed=True)

        now = self._clock()
        if counter.lockout_until is None:
            # Threshold reached but lockout not yet recorded: fail closed
            retry_after = self.config.lockout_seconds
        elif counter.lockout_until > now:
            retry_after = math.ceil((counter.lockout_until - now).total_seconds())
        else:
            self.store.delete(key)
            logger.info("login_lockout_expired", identifier_hash=key[:12])
            return ThrottleDecision(allowed=True)

        logger.warning(
            "login_throttled",
            identifier_hash=key[:12],
            attempt_count=counter.count,
            retry_after=retry_after,
        )
        return ThrottleDecision(allowed=False, retry_after=max(1, retry_after))

    def record_failure(self, identifier: str) -> ThrottleCounter:
        """
        Record a failed login attempt.

        Args:
            identifier: Login identifier that failed authentication

        Returns:
            The counter after the increment (and lockout, if reached)
        """
        key = hash_identifier(identifier)
        counter = self.store.increment(key, self.config.window_seconds)

        logger.info(
            "login_attempt_failed",
            identifier_hash=key[:12],
            attempt_count=counter.count,
            max_attempts=self.config.max_attempts,
        )

        if counter.count >= self.config.max_attempts:
            until = self._clock() + timedelta(seconds=self.config.lockout_seconds)
            locked = self.store.set_lockout(key, until)
            if locked is not None:
                counter = locked
            logger.warning(
                "login_lockout_started",
                identifier_hash=key[:12],
                lockout_seconds=self.config.lockout_seconds,
            )

        return counter

    def clear(self, identifier: str) -> None:
        """
        Clear failed attempts for an identifier (e.g., after successful login).

        Args:
            identifier: Login identifier to clear
        """
        key = hash_identifier(identifier)
        self.store.delete(key)
        logger.debug("login_attempts_cleared", identifier_hash=key[:12])

    def attempt_count(self, identifier: str) -> int:
        """Return the current failure count for an identifier."""
        counter = self.store.get(hash_identifier(identifier))
        return counter.count if counter else 0

    def remaining_attempts(self, identifier: str) -> int:
        """
        Get the number of failures allowed before a lockout.

        Args:
            identifier: Login identifier to check

        Returns:
            Remaining attempts, never negative
        """
        return max(0, self.config.max_attempts - self.attempt_count(identifier))

