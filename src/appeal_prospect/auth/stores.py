"""
Store contracts for sessions and throttle counters, with in-memory backends.

Production deployments plug in a shared, TTL-aware store that satisfies the
same protocols. The in-memory backends serialise every mutation behind one
lock, which makes `InMemoryCounterStore.increment` an atomic
increment-and-get with TTL refresh.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, Optional, Protocol, Tuple

from ..common.clock import Clock, utcnow
from .session import Session


@dataclass(frozen=True)
class ThrottleCounter:
    """Failed-attempt counter for one hashed login identifier."""

    identifier_hash: str
    count: int
    window_expires_at: datetime
    lockout_until: Optional[datetime] = None


class SessionStore(Protocol):
    """Contract for session persistence keyed by opaque session id."""

    def get(self, session_id: str) -> Optional[Session]:
        ...

    def set(self, session_id: str, session: Session, ttl_seconds: int) -> None:
        ...

    def destroy(self, session_id: str) -> None:
        ...


class CounterStore(Protocol):
    """Contract for throttle counters.

    `increment` MUST be atomic per key: concurrent callers each observe a
    distinct post-increment count.
    """

    def get(self, key: str) -> Optional[ThrottleCounter]:
        ...

    def increment(self, key: str, ttl_seconds: int) -> ThrottleCounter:
        ...

    def set_lockout(self, key: str, until: datetime) -> Optional[ThrottleCounter]:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemorySessionStore:
    """
    Thread-safe in-memory SessionStore.

    Sessions are copied on the way in and out so callers never share mutable
    state; the last writer for a session id wins. Expired entries are dropped
    when read and swept on write at most once per `sweep_interval_seconds`.
    """

    def __init__(self, clock: Clock = utcnow, sweep_interval_seconds: int = 60):
        self._clock = clock
        self._sessions: Dict[str, Tuple[Session, datetime]] = {}
        self._lock = Lock()
        self._sweep_interval = timedelta(seconds=sweep_interval_seconds)
        self._last_sweep = clock()

    def _sweep(self, now: datetime) -> None:
        """Drop every expired session. Caller holds the lock."""
        if now - self._last_sweep < self._sweep_interval:
            return
        self._last_sweep = now
        expired = [sid for sid, (_, expires_at) in self._sessions.items() if expires_at <= now]
        for session_id in expired:
            del self._sessions[session_id]

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            session, expires_at = entry
            if expires_at <= self._clock():
                del self._sessions[session_id]
                return None
            return session.model_copy(deep=True)

    def set(self, session_id: str, session: Session, ttl_seconds: int) -> None:
        now = self._clock()
        expires_at = now + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._sweep(now)
            self._sessions[session_id] = (session.model_copy(deep=True), expires_at)

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions


class InMemoryCounterStore:
    """
    Thread-safe in-memory CounterStore with per-key expiry.

    A counter whose lockout has ended no longer counts toward a new lockout:
    the next failure starts a fresh window.
    """

    def __init__(self, clock: Clock = utcnow, sweep_interval_seconds: int = 60):
        self._clock = clock
        self._counters: Dict[str, ThrottleCounter] = {}
        self._lock = Lock()
        self._sweep_interval = timedelta(seconds=sweep_interval_seconds)
        self._last_sweep = clock()

    def _sweep(self, now: datetime) -> None:
        """Drop every expired counter. Caller holds the lock."""
        if now - self._last_sweep < self._sweep_interval:
            return
        self._last_sweep = now
        expired = [k for k, c in self._counters.items() if c.window_expires_at <= now]
        for key in expired:
            del self._counters[key]

    def _live(self, key: str, now: datetime) -> Optional[ThrottleCounter]:
        """Return the unexpired counter for key. Caller holds the lock."""
        counter = self._counters.get(key)
        if counter is not None and counter.window_expires_at <= now:
            del self._counters[key]
            return None
        return counter

    def get(self, key: str) -> Optional[ThrottleCounter]:
        with self._lock:
            return self._live(key, self._clock())

    def increment(self, key: str, ttl_seconds: int) -> ThrottleCounter:
        with self._lock:
            now = self._clock()
            self._sweep(now)
            window_expires_at = now + timedelta(seconds=ttl_seconds)
            counter = self._live(key, now)
            if counter is not None and counter.lockout_until is not None:
                if counter.lockout_until <= now:
                    counter = None
            if counter is None:
                counter = ThrottleCounter(
                    identifier_hash=key,
                    count=1,
                    window_expires_at=window_expires_at,
                )
            else:
                counter = replace(
                    counter,
                    count=counter.count + 1,
                    # the window never closes before an active lockout
                    window_expires_at=max(
                        window_expires_at, counter.lockout_until or window_expires_at
                    ),
                )
            self._counters[key] = counter
            return counter

    def set_lockout(self, key: str, until: datetime) -> Optional[ThrottleCounter]:
        with self._lock:
            now = self._clock()
            counter = self._live(key, now)
            if counter is None:
                return None
            if counter.lockout_until is None or counter.lockout_until <= now:
                counter = replace(
                    counter,
                    lockout_until=until,
                    window_expires_at=max(counter.window_expires_at, until),
                )
                self._counters[key] = counter
            return counter

    def delete(self, key: str) -> None:
        with self._lock:
            self._counters.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)
