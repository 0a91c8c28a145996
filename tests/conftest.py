"""Shared pytest fixtures for all tests."""

import os
from datetime import datetime, timedelta, timezone

import pytest

from appeal_prospect.auth import (
    CredentialVault,
    InMemoryAuditSink,
    InMemoryUserDirectory,
    PasswordHasher,
    RequestContext,
    SecurityAuditor,
    SessionGuard,
)
from appeal_prospect.common.config import Config, LoggingConfig, PasswordConfig
from appeal_prospect.core.secret_settings import InMemorySecretsStore, SecretSettings

TEST_EMAIL = "counsel@example.com"
TEST_PASSWORD = "Correct1Horse"
TEST_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) TestBrowser/1.0"
TEST_ADDRESS = "203.0.113.10"


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: datetime = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock that only moves when a test advances it."""
    return FakeClock()


@pytest.fixture
def password_config() -> PasswordConfig:
    """Provide cheap Argon2id parameters so tests stay fast."""
    return PasswordConfig(
        argon2_memory_cost=8192,
        argon2_time_cost=1,
        argon2_parallelism=1,
    )


@pytest.fixture
def hasher(password_config: PasswordConfig) -> PasswordHasher:
    """Provide a password hasher with test parameters."""
    return PasswordHasher(password_config)


@pytest.fixture
def test_config(password_config: PasswordConfig) -> Config:
    """Provide a test configuration."""
    return Config(
        passwords=password_config,
        logging=LoggingConfig(
            level="WARNING",  # Reduce noise in tests
            format="text",
            handlers=["console"],
        ),
    )


@pytest.fixture
def master_key() -> bytes:
    """Provide fresh 32-byte key material."""
    return os.urandom(32)


@pytest.fixture
def vault(master_key: bytes) -> CredentialVault:
    """Provide a vault keyed with the test master key."""
    return CredentialVault(master_key)


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    """Provide an audit sink that records events in memory."""
    return InMemoryAuditSink()


@pytest.fixture
def users(hasher: PasswordHasher, clock: FakeClock) -> InMemoryUserDirectory:
    """Provide an empty user directory."""
    return InMemoryUserDirectory(hasher, clock)


@pytest.fixture
def registered_user(users: InMemoryUserDirectory):
    """Provide a registered, unprivileged user."""
    return users.register(TEST_EMAIL, TEST_PASSWORD, "Test Counsel")


@pytest.fixture
def guard(
    test_config: Config,
    hasher: PasswordHasher,
    users: InMemoryUserDirectory,
    audit_sink: InMemoryAuditSink,
    clock: FakeClock,
) -> SessionGuard:
    """Provide a SessionGuard wired to in-memory collaborators and the fake clock."""
    return SessionGuard(
        config=test_config,
        hasher=hasher,
        users=users,
        auditor=SecurityAuditor(audit_sink, clock),
        clock=clock,
    )


@pytest.fixture
def secret_settings(vault: CredentialVault, clock: FakeClock) -> SecretSettings:
    """Provide a settings facade over an in-memory store."""
    return SecretSettings(InMemorySecretsStore(clock), vault)


@pytest.fixture
def make_ctx():
    """Provide a factory for request contexts from one browser."""

    def _make(
        session_id=None,
        user_agent: str = TEST_USER_AGENT,
        source_address: str = TEST_ADDRESS,
        is_secure: bool = False,
    ) -> RequestContext:
        return RequestContext(
            user_agent=user_agent,
            source_address=source_address,
            is_secure=is_secure,
            session_id=session_id,
        )

    return _make
