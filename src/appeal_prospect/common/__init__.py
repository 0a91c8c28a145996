"""Common utilities and shared components for the security core."""

from .clock import Clock, utcnow
from .config import (
    Config,
    CsrfConfig,
    FileLoggingConfig,
    LoggingConfig,
    PasswordConfig,
    SecuritySettings,
    SessionConfig,
    ThrottleConfig,
)
from .logging_config import setup_logging, bind_context, clear_context

__all__ = [
    "Clock",
    "utcnow",
    "Config",
    "CsrfConfig",
    "FileLoggingConfig",
    "LoggingConfig",
    "PasswordConfig",
    "SecuritySettings",
    "SessionConfig",
    "ThrottleConfig",
    "setup_logging",
    "bind_context",
    "clear_context",
]
