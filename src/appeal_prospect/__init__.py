"""Appeal Prospect security core package initialization."""

from pathlib import Path
from typing import Optional, Union

import structlog

from .common.config import (
    Config,
    CsrfConfig,
    LoggingConfig,
    PasswordConfig,
    SecuritySettings,
    SessionConfig,
    ThrottleConfig,
)
from .common.logging_config import setup_logging
from .core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    CsrfInvalidError,
    DecryptionError,
    ErrorKind,
    PrivilegeRequiredError,
    SecurityError,
    SessionInvalidError,
    ThrottledError,
    ValidationError,
    user_message,
)
from .auth import (
    AuditEvent,
    CredentialVault,
    CsrfTokenManager,
    InMemoryAuditSink,
    InMemoryUserDirectory,
    LoginThrottle,
    PasswordHasher,
    RequestContext,
    SecurityAuditor,
    Session,
    SessionGuard,
    generate_master_key,
)
from .core.secret_settings import InMemorySecretsStore, SecretRecord, SecretSettings

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Configuration
    "Config",
    "CsrfConfig",
    "LoggingConfig",
    "PasswordConfig",
    "SecuritySettings",
    "SessionConfig",
    "ThrottleConfig",
    "setup_logging",
    "configure",
    "get_config",
    "get_guard",
    "get_vault",
    "get_secret_settings",
    "reset",
    # Exceptions
    "AuthenticationError",
    "ConfigurationError",
    "CsrfInvalidError",
    "DecryptionError",
    "ErrorKind",
    "PrivilegeRequiredError",
    "SecurityError",
    "SessionInvalidError",
    "ThrottledError",
    "ValidationError",
    "user_message",
    # Components
    "AuditEvent",
    "CredentialVault",
    "CsrfTokenManager",
    "InMemoryAuditSink",
    "InMemoryUserDirectory",
    "LoginThrottle",
    "PasswordHasher",
    "RequestContext",
    "SecurityAuditor",
    "Session",
    "SessionGuard",
    "InMemorySecretsStore",
    "SecretRecord",
    "SecretSettings",
    # Helpers
    "generate_master_key",
    "encrypt_secret",
    "decrypt_secret",
]

logger = structlog.get_logger(__name__)

# Global state
_config: Optional[Config] = None
_guard: Optional[SessionGuard] = None
_vault: Optional[CredentialVault] = None
_secret_settings: Optional[SecretSettings] = None


def configure(
    config_path: Optional[Path] = None,
    config: Optional[Config] = None,
    settings: Optional[SecuritySettings] = None,
) -> None:
    """
    Configure the security core.

    Call once at application startup. Loads configuration, sets up logging,
    loads the master key and builds the session guard.

    Args:
        config_path: Path to YAML configuration file
        config: Pre-loaded Config object (takes precedence over config_path)
        settings: Environment settings (read from APPEAL_PROSPECT_* if omitted)

    Raises:
        ConfigurationError: If the master key is missing or malformed

    Example:
        >>> import appeal_prospect
        >>> appeal_prospect.configure(config_path=Path("config.yaml"))
    """
    global _config, _guard, _vault, _secret_settings

    settings = settings or SecuritySettings()
    if config is None:
        config_path = config_path or settings.config_path
        config = Config.from_yaml(config_path) if config_path is not None else Config()

    setup_logging(config.logging)

    # Key material is checked before any state is replaced
    vault = CredentialVault.from_settings(settings)

    _config = config
    _vault = vault
    _guard = SessionGuard(config)
    _secret_settings = SecretSettings(InMemorySecretsStore(), vault)

    logger.info("appeal_prospect_configured", version=__version__)


def get_config() -> Config:
    """
    Get current configuration, initializing with defaults if needed.

    Returns:
        Current Config object
    """
    global _config
    if _config is None:
        _config = Config()
        setup_logging(_config.logging)
    return _config


def get_guard() -> SessionGuard:
    """
    Get the process-wide SessionGuard, creating one from the current config.

    Returns:
        SessionGuard instance
    """
    global _guard
    if _guard is None:
        _guard = SessionGuard(get_config())
    return _guard


def get_vault() -> CredentialVault:
    """
    Get the process-wide CredentialVault.

    Raises:
        ConfigurationError: If no master key is configured
    """
    global _vault
    if _vault is None:
        _vault = CredentialVault.from_settings(SecuritySettings())
    return _vault


def get_secret_settings() -> SecretSettings:
    """Get the process-wide SecretSettings facade."""
    global _secret_settings
    if _secret_settings is None:
        _secret_settings = SecretSettings(InMemorySecretsStore(), get_vault())
    return _secret_settings


def reset() -> None:
    """Drop all process-wide state. Used by tests."""
    global _config, _guard, _vault, _secret_settings
    _config = None
    _guard = None
    _vault = None
    _secret_settings = None


def encrypt_secret(plaintext: Union[str, bytes]) -> str:
    """Encrypt a secret with the process-wide vault."""
    return get_vault().encrypt(plaintext)


def decrypt_secret(blob: str) -> str:
    """
    Decrypt a secret with the process-wide vault.

    Raises:
        DecryptionError: If the blob is malformed or fails authentication
    """
    return get_vault().decrypt_text(blob)
