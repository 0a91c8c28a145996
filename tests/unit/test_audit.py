"""Tests for security audit records."""

from structlog.testing import capture_logs

from appeal_prospect.auth import (
    AuditEvent,
    InMemoryAuditSink,
    LoggingAuditSink,
    RequestContext,
    SecurityAuditor,
)
from appeal_prospect.common.logging_config import REDACTED


class TestSecurityAuditor:
    """Tests for record construction."""

    def test_record_shape(self, clock):
        """Test that records carry the documented fields."""
        sink = InMemoryAuditSink()
        auditor = SecurityAuditor(sink, clock)
        ctx = RequestContext(user_agent="UA/1.0", source_address="198.51.100.4")

        auditor.record(AuditEvent.LOGIN_FAILED, ctx, attempt_count=2)

        record = sink.records[0]
        assert record == {
            "timestamp": clock().isoformat(),
            "event_name": "login_failed",
            "subject_id": None,
            "source_address": "198.51.100.4",
            "user_agent": "UA/1.0",
            "context": {"attempt_count": 2},
        }

    def test_unknown_request_fields(self, clock):
        """Test that missing request details are recorded as unknown."""
        sink = InMemoryAuditSink()
        SecurityAuditor(sink, clock).record(AuditEvent.LOGOUT)
        assert sink.records[0]["source_address"] == "unknown"
        assert sink.records[0]["user_agent"] == "unknown"

    def test_secret_context_redacted(self, clock):
        """Test that context keys naming secrets are redacted."""
        sink = InMemoryAuditSink()
        SecurityAuditor(sink, clock).record(
            AuditEvent.CSRF_INVALID, None, csrf_token="abc", password="pw", path="/x"
        )
        context = sink.records[0]["context"]
        assert context["csrf_token"] == REDACTED
        assert context["password"] == REDACTED
        assert context["path"] == "/x"

    def test_explicit_subject(self, clock):
        """Test that an explicit subject id overrides the context."""
        sink = InMemoryAuditSink()
        SecurityAuditor(sink, clock).record(AuditEvent.LOGIN_SUCCESS, subject_id=42)
        assert sink.records[0]["subject_id"] == 42

    def test_events_helper(self, clock):
        """Test that the in-memory sink lists event names in order."""
        sink = InMemoryAuditSink()
        auditor = SecurityAuditor(sink, clock)
        auditor.record(AuditEvent.LOGIN_FAILED)
        auditor.record(AuditEvent.RATE_LIMIT_EXCEEDED)
        assert sink.events() == ["login_failed", "rate_limit_exceeded"]


class TestLoggingAuditSink:
    """Tests for the structlog-backed sink."""

    def test_emits_event_with_levels(self, clock):
        """Test that failures log as warnings and successes as info."""
        auditor = SecurityAuditor(LoggingAuditSink(), clock)
        with capture_logs() as logs:
            auditor.record(AuditEvent.LOGIN_SUCCESS, subject_id=1)
            auditor.record(AuditEvent.LOGIN_FAILED)

        assert [entry["event"] for entry in logs] == ["login_success", "login_failed"]
        assert logs[0]["log_level"] == "info"
        assert logs[1]["log_level"] == "warning"
        assert logs[0]["occurred_at"] == clock().isoformat()
