"""Security audit events and sinks."""

from enum import Enum
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Protocol

import structlog

from ..common.clock import Clock, utcnow
from ..common.logging_config import redact_value
from .session import RequestContext

AUDIT_LOGGER_NAME = "appeal_prospect.audit"


class AuditEvent(str, Enum):
    """Security events written to the audit sink."""

    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    SESSION_SECURITY_VIOLATION = "session_security_violation"
    CSRF_INVALID = "csrf_invalid"
    LOGOUT = "logout"


class AuditSink(Protocol):
    """Destination for structured audit records."""

    def emit(self, record: Mapping[str, Any]) -> None:
        ...


class LoggingAuditSink:
    """Writes audit records through structlog on the audit logger."""

    def __init__(self, logger_name: str = AUDIT_LOGGER_NAME):
        self._logger = structlog.get_logger(logger_name)

    def emit(self, record: Mapping[str, Any]) -> None:
        fields = dict(record)
        event_name = fields.pop("event_name")
        # structlog adds its own timestamp; keep ours under a distinct key
        fields["occurred_at"] = fields.pop("timestamp")
        if event_name in (AuditEvent.LOGIN_SUCCESS.value, AuditEvent.LOGOUT.value):
            self._logger.info(event_name, **fields)
        else:
            self._logger.warning(event_name, **fields)


class InMemoryAuditSink:
    """Keeps audit records in a list; used by tests and diagnostics."""

    def __init__(self) -> None:
        self.records: List[Dict[str, Any]] = []
        self._lock = Lock()

    def emit(self, record: Mapping[str, Any]) -> None:
        with self._lock:
            self.records.append(dict(record))

    def events(self) -> List[str]:
        with self._lock:
            return [r["event_name"] for r in self.records]


class SecurityAuditor:
    """
    Builds audit records from a request context and hands them to a sink.

    Record shape:
        {timestamp, event_name, subject_id, source_address, user_agent, context}

    Context keys that name secret material are redacted before emission.
    """

    def __init__(self, sink: Optional[AuditSink] = None, clock: Clock = utcnow):
        self.sink: AuditSink = sink if sink is not None else LoggingAuditSink()
        self._clock = clock

    def record(
        self,
        event: AuditEvent,
        ctx: Optional[RequestContext] = None,
        subject_id: Optional[int] = None,
        **context: Any,
    ) -> Dict[str, Any]:
        """
        Emit one audit event.

        Args:
            event: Event kind
            ctx: Request context supplying address and user-agent
            subject_id: Subject to attribute the event to (defaults to the
                context's signed-in subject)
            **context: Additional event details

        Returns:
            The record that was emitted
        """
        if subject_id is None and ctx is not None:
            subject_id = ctx.subject_id

        record = {
            "timestamp": self._clock().isoformat(),
            "event_name": event.value,
            "subject_id": subject_id,
            "source_address": ctx.source_address if ctx and ctx.source_address else "unknown",
            "user_agent": ctx.user_agent if ctx and ctx.user_agent else "unknown",
            "context": {k: redact_value(k, v) for k, v in context.items()},
        }
        self.sink.emit(record)
        return record
