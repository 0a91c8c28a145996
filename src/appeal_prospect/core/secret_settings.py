"""Application settings with encryption at rest for secret values."""

from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional, Protocol

import structlog
from pydantic import BaseModel

from ..auth.policy import validate_api_key
from ..auth.vault import CredentialVault
from ..common.clock import Clock, utcnow
from .exceptions import DecryptionError

logger = structlog.get_logger(__name__)

MASKED_VALUE = "********"


class SecretRecord(BaseModel):
    """A stored setting; `value` is ciphertext when `is_encrypted`."""

    key: str
    value: str
    is_encrypted: bool = False
    description: Optional[str] = None
    updated_at: datetime

    def __repr__(self) -> str:
        return f"SecretRecord(key={self.key!r}, is_encrypted={self.is_encrypted!r})"


class SecretsStore(Protocol):
    """Persistence contract for settings rows."""

    def get(self, key: str) -> Optional[SecretRecord]:
        ...

    def set(
        self,
        key: str,
        value: str,
        is_encrypted: bool,
        description: Optional[str] = None,
    ) -> SecretRecord:
        ...

    def all(self) -> List[SecretRecord]:
        ...


class InMemorySecretsStore:
    """Thread-safe in-memory SecretsStore with upsert semantics."""

    def __init__(self, clock: Clock = utcnow):
        self._clock = clock
        self._rows: Dict[str, SecretRecord] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[SecretRecord]:
        with self._lock:
            record = self._rows.get(key)
            return record.model_copy() if record else None

    def set(
        self,
        key: str,
        value: str,
        is_encrypted: bool,
        description: Optional[str] = None,
    ) -> SecretRecord:
        with self._lock:
            existing = self._rows.get(key)
            if description is None and existing is not None:
                description = existing.description
            record = SecretRecord(
                key=key,
                value=value,
                is_encrypted=is_encrypted,
                description=description,
                updated_at=self._clock(),
            )
            self._rows[key] = record
            return record.model_copy()

    def all(self) -> List[SecretRecord]:
        with self._lock:
            return [r.model_copy() for r in sorted(self._rows.values(), key=lambda r: r.key)]


class SecretSettings:
    """
    Settings facade that encrypts secret values through a CredentialVault.

    A value that fails decryption is treated as missing: the failure is
    logged and the caller's default is returned.

    Example:
        >>> settings = SecretSettings(InMemorySecretsStore(), vault)
        >>> settings.set_api_key("openai", "sk-" + "x" * 40)
        >>> settings.is_configured("openai")
        True
    """

    def __init__(self, store: SecretsStore, vault: CredentialVault):
        self.store = store
        self.vault = vault

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Read a setting, decrypting it if it is stored encrypted.

        Args:
            key: Setting key
            default: Returned when the key is missing or undecryptable

        Returns:
            Plain text value or default
        """
        record = self.store.get(key)
        if record is None:
            return default
        if not record.is_encrypted:
            return record.value
        try:
            return self.vault.decrypt_text(record.value)
        except DecryptionError:
            logger.error("setting_decryption_failed", key=key)
            return default

    def set(
        self,
        key: str,
        value: str,
        is_encrypted: bool = False,
        description: Optional[str] = None,
    ) -> SecretRecord:
        """
        Upsert a setting, encrypting the value first when requested.

        Args:
            key: Setting key
            value: Plain text value
            is_encrypted: Store the value as vault ciphertext
            description: Optional human-readable description

        Returns:
            The stored record
        """
        stored = self.vault.encrypt(value) if is_encrypted else value
        record = self.store.set(key, stored, is_encrypted, description)
        logger.info("setting_updated", key=key, is_encrypted=is_encrypted)
        return record

    @staticmethod
    def api_key_name(provider: str) -> str:
        return f"{provider}_api_key"

    def get_api_key(self, provider: str) -> Optional[str]:
        """Return the decrypted API key for a provider, or None."""
        return self.get(self.api_key_name(provider))

    def set_api_key(self, provider: str, key: str) -> SecretRecord:
        """
        Validate and store a provider API key encrypted.

        Raises:
            ValidationError: If the key fails the provider's format policy
        """
        key = validate_api_key(key, provider)
        return self.set(
            self.api_key_name(provider),
            key,
            is_encrypted=True,
            description=f"{provider} API key",
        )

    def is_configured(self, provider: str) -> bool:
        return bool(self.get_api_key(provider))

    def list_settings(self) -> List[SecretRecord]:
        """Return all settings with encrypted values masked."""
        return [
            r.model_copy(update={"value": MASKED_VALUE}) if r.is_encrypted else r
            for r in self.store.all()
        ]
