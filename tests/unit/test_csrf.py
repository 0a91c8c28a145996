"""Tests for CSRF token issuance, rotation and validation."""

import pytest

from appeal_prospect.auth import CsrfTokenManager, Session
from appeal_prospect.common.config import CsrfConfig


@pytest.fixture
def csrf(clock) -> CsrfTokenManager:
    return CsrfTokenManager(CsrfConfig(max_age_seconds=3600), clock)


@pytest.fixture
def session(clock) -> Session:
    now = clock()
    return Session(created_at=now, last_activity_at=now, last_rotated_at=now)


class TestIssue:
    """Tests for token issuance."""

    def test_issue_generates_256_bit_hex_token(self, csrf, session):
        """Test that issue() creates a 64-character hex token."""
        token = csrf.issue(session)
        assert len(token) == 64
        int(token, 16)
        assert session.csrf_token == token
        assert session.csrf_issued_at is not None

    def test_issue_is_idempotent(self, csrf, session, clock):
        """Test that issue() returns the existing token."""
        first = csrf.issue(session)
        clock.advance(100)
        assert csrf.issue(session) == first

    def test_tokens_differ_between_sessions(self, csrf, clock):
        """Test that separate sessions get separate tokens."""
        now = clock()
        a = Session(created_at=now, last_activity_at=now, last_rotated_at=now)
        b = Session(created_at=now, last_activity_at=now, last_rotated_at=now)
        assert csrf.issue(a) != csrf.issue(b)


class TestValidate:
    """Tests for token validation."""

    def test_valid_token(self, csrf, session):
        """Test that the issued token validates."""
        assert csrf.validate(session, csrf.issue(session)) is True

    def test_wrong_token(self, csrf, session):
        """Test that a different token fails."""
        csrf.issue(session)
        assert csrf.validate(session, "0" * 64) is False

    def test_empty_submission(self, csrf, session):
        """Test that empty and missing submissions fail."""
        csrf.issue(session)
        assert csrf.validate(session, "") is False
        assert csrf.validate(session, None) is False

    def test_no_stored_token(self, csrf, session):
        """Test that validation fails before any token is issued."""
        assert csrf.validate(session, "a" * 64) is False

    def test_no_session(self, csrf):
        """Test that validation fails without a session."""
        assert csrf.validate(None, "a" * 64) is False

    def test_expires_after_max_age(self, csrf, session, clock):
        """Test that a token fails at 3601 seconds with a 3600 second limit."""
        token = csrf.issue(session)
        clock.advance(3600)
        assert csrf.validate(session, token) is True
        clock.advance(1)
        assert csrf.validate(session, token) is False


class TestRotate:
    """Tests for token rotation."""

    def test_rotate_keeps_fresh_token(self, csrf, session, clock):
        """Test that rotate() keeps a token younger than the max age."""
        token = csrf.issue(session)
        clock.advance(60)
        assert csrf.rotate(session) == token

    def test_rotate_replaces_expired_token(self, csrf, session, clock):
        """Test that rotate() replaces an expired token with no grace period."""
        old = csrf.issue(session)
        clock.advance(3601)
        new = csrf.rotate(session)
        assert new != old
        assert csrf.validate(session, old) is False
        assert csrf.validate(session, new) is True

    def test_rotate_issues_when_missing(self, csrf, session):
        """Test that rotate() issues a token when none exists."""
        assert csrf.rotate(session) == session.csrf_token

    def test_reset(self, csrf, session):
        """Test that reset() clears the token so the next issue is fresh."""
        old = csrf.issue(session)
        csrf.reset(session)
        assert session.csrf_token is None
        assert csrf.issue(session) != old
