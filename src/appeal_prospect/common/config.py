"""Configuration models using Pydantic for validation."""

import base64
import binascii
from pathlib import Path
from typing import Dict, List, Literal, Optional

import structlog
import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

MASTER_KEY_LENGTH = 32


class FileLoggingConfig(BaseModel):
    """Configuration for file-based logging."""

    path: str = Field(
        default="logs/appeal_prospect.log",
        description="Path to log file",
    )
    max_bytes: int = Field(
        default=10485760,  # 10MB
        ge=1024,
        description="Maximum size of log file before rotation",
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Number of backup log files to keep",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    format: str = Field(
        default="json",
        description="Log format: json or text",
    )
    handlers: List[str] = Field(
        default_factory=lambda: ["console"],
        description="Enabled log handlers: console, file",
    )
    file: Optional[FileLoggingConfig] = Field(
        default=None,
        description="File logging configuration (optional)",
    )
    third_party: Dict[str, str] = Field(
        default_factory=dict,
        description="Log levels for third-party libraries",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of {valid_levels}"
            )
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(
                f"Invalid format: {v}. Must be one of {valid_formats}"
            )
        return v_lower

    @field_validator("handlers")
    @classmethod
    def validate_handlers(cls, v: List[str]) -> List[str]:
        """Validate handlers."""
        valid_handlers = ["console", "file"]
        for handler in v:
            if handler not in valid_handlers:
                raise ValueError(
                    f"Invalid handler: {handler}. Must be one of {valid_handlers}"
                )
        return v


class SessionConfig(BaseModel):
    """Configuration for session lifecycle and cookie attributes."""

    cookie_name: str = Field(
        default="appeal_session",
        min_length=1,
        description="Name of the session cookie",
    )
    cookie_path: str = Field(
        default="/",
        description="Path attribute of the session cookie",
    )
    lifetime_seconds: int = Field(
        default=7200,
        ge=60,
        le=86400 * 30,
        description="Idle time after which an authenticated session expires",
    )
    rotation_interval_seconds: int = Field(
        default=300,
        ge=1,
        description="Minimum age of a session identifier before it is rotated",
    )
    rotation_grace_seconds: int = Field(
        default=30,
        ge=0,
        le=300,
        description="How long a rotated-out identifier still resolves to its session",
    )
    ipv4_tolerance_prefix: int = Field(
        default=24,
        ge=0,
        le=32,
        description="IPv4 prefix length within which an address change is tolerated",
    )
    ipv6_tolerance_prefix: int = Field(
        default=64,
        ge=0,
        le=128,
        description="IPv6 prefix length within which an address change is tolerated",
    )
    hsts_enabled: bool = Field(
        default=False,
        description="Send Strict-Transport-Security on TLS requests",
    )
    content_security_policy: str = Field(
        default=(
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net https://cdnjs.cloudflare.com; "
            "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com https://cdn.jsdelivr.net "
            "https://cdnjs.cloudflare.com; "
            "font-src 'self' https://fonts.gstatic.com https://cdnjs.cloudflare.com; "
            "img-src 'self' data:; "
            "connect-src 'self'"
        ),
        description="Content-Security-Policy header value",
    )


class CsrfConfig(BaseModel):
    """Configuration for anti-forgery tokens."""

    max_age_seconds: int = Field(
        default=3600,
        ge=60,
        description="Maximum token age before it is rejected and rotated",
    )
    field_name: str = Field(
        default="csrf_token",
        description="Form/JSON field carrying the token",
    )
    header_name: str = Field(
        default="X-CSRF-Token",
        description="Header carrying the token for script clients",
    )


class ThrottleConfig(BaseModel):
    """Configuration for login-abuse throttling."""

    max_attempts: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Failed attempts that trigger a lockout",
    )
    window_seconds: int = Field(
        default=3600,
        ge=1,
        description="Lifetime of the failure counter, refreshed on each failure",
    )
    lockout_seconds: int = Field(
        default=900,
        ge=1,
        description="Duration of a lockout once the threshold is reached",
    )


class PasswordConfig(BaseModel):
    """Configuration for password hashing."""

    scheme: Literal["argon2id", "bcrypt"] = Field(
        default="argon2id",
        description="Hashing scheme for new password hashes",
    )
    argon2_memory_cost: int = Field(
        default=65536,  # 64 MiB
        ge=8192,
        description="Argon2id memory cost in KiB",
    )
    argon2_time_cost: int = Field(
        default=4,
        ge=1,
        description="Argon2id iterations",
    )
    argon2_parallelism: int = Field(
        default=3,
        ge=1,
        description="Argon2id lanes",
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=12,
        le=31,
        description="bcrypt cost factor",
    )


class Config(BaseModel):
    """Main configuration class for the security core."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    session: SessionConfig = Field(
        default_factory=SessionConfig,
        description="Session lifecycle configuration",
    )
    csrf: CsrfConfig = Field(
        default_factory=CsrfConfig,
        description="CSRF token configuration",
    )
    throttle: ThrottleConfig = Field(
        default_factory=ThrottleConfig,
        description="Login throttle configuration",
    )
    passwords: PasswordConfig = Field(
        default_factory=PasswordConfig,
        description="Password hashing configuration",
    )

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config object with validated configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML is invalid
            pydantic.ValidationError: If configuration is invalid
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})

    @classmethod
    def from_yaml_string(cls, yaml_string: str) -> "Config":
        """
        Load configuration from YAML string.

        Example:
            >>> config = Config.from_yaml_string("throttle:\\n  max_attempts: 3")
            >>> config.throttle.max_attempts
            3
        """
        data = yaml.safe_load(yaml_string)
        return cls.model_validate(data or {})


class SecuritySettings(BaseSettings):
    """
    Secret material loaded from the environment.

    Settings are read from variables prefixed with APPEAL_PROSPECT_, for
    example APPEAL_PROSPECT_MASTER_KEY=<base64 of 32 random bytes>. A key
    file may be used instead via APPEAL_PROSPECT_MASTER_KEY_FILE.

    Attributes:
        master_key: Base64-encoded 32-byte master key
        master_key_file: Path to a file holding the base64 master key
        config_path: Optional YAML file for the non-secret Config
    """

    model_config = SettingsConfigDict(
        env_prefix="APPEAL_PROSPECT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    master_key: Optional[SecretStr] = None
    master_key_file: Optional[Path] = None
    config_path: Optional[Path] = None

    def load_master_key(self) -> bytes:
        """
        Resolve and decode the master key.

        Returns:
            Raw 32-byte key material

        Raises:
            ConfigurationError: If no key is configured or both sources are set,
                the key file is unreadable, or the value does not decode to 32 bytes
        """
        if self.master_key is not None and self.master_key_file is not None:
            raise ConfigurationError(
                "Set only one of APPEAL_PROSPECT_MASTER_KEY and "
                "APPEAL_PROSPECT_MASTER_KEY_FILE"
            )

        if self.master_key is not None:
            encoded = self.master_key.get_secret_value()
            source = "environment"
        elif self.master_key_file is not None:
            try:
                encoded = self.master_key_file.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(
                    f"Cannot read master key file {self.master_key_file}: {e.strerror}"
                ) from e
            source = "file"
        else:
            raise ConfigurationError(
                "No master key configured. Set APPEAL_PROSPECT_MASTER_KEY or "
                "APPEAL_PROSPECT_MASTER_KEY_FILE. Generate one with: "
                'python -c "import appeal_prospect; print(appeal_prospect.generate_master_key())"'
            )

        try:
            key = base64.b64decode(encoded.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError("Master key is not valid base64") from e

        if len(key) != MASTER_KEY_LENGTH:
            raise ConfigurationError(
                f"Master key must decode to {MASTER_KEY_LENGTH} bytes, got {len(key)}"
            )

        # Only the source is logged, never the key material
        logger.debug("master_key_loaded", source=source)
        return key
