"""
Credential vault: authenticated encryption of operator secrets at rest.

Blob format (base64 text):
    [iv 16B][GCM tag 16B][ciphertext]

The data key is derived once per process with HKDF-SHA256 from a dedicated
master key. Never log plaintext, ciphertext or key material.
"""

import base64
import binascii
import os
import secrets
from typing import Union

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..common.config import MASTER_KEY_LENGTH, SecuritySettings
from ..core.exceptions import ConfigurationError, DecryptionError

logger = structlog.get_logger(__name__)

IV_SIZE = 16
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256
KEY_CONTEXT = "appeal-prospect-settings-v1"


def derive_key(master_key: bytes, context: str = KEY_CONTEXT) -> bytes:
    """Derive a 32-byte data key from the master key using HKDF-SHA256.

    Args:
        master_key: Raw master key bytes.
        context: Context string for domain separation.

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # deterministic: the same master key must reopen old blobs
        info=context.encode("utf-8"),
    )
    return hkdf.derive(master_key)


def generate_master_key() -> str:
    """Return a new random master key, base64 encoded, for operator setup."""
    return base64.b64encode(secrets.token_bytes(MASTER_KEY_LENGTH)).decode("ascii")


class CredentialVault:
    """
    Stateless AES-256-GCM transform for secrets stored as opaque text.

    Every call to encrypt() draws a fresh random IV. decrypt() fails closed:
    tampering, truncation, malformed encoding and a wrong key all raise
    DecryptionError and never return plaintext.

    Example:
        >>> vault = CredentialVault(os.urandom(32))
        >>> blob = vault.encrypt("sk-live-123")
        >>> vault.decrypt_text(blob)
        'sk-live-123'
    """

    __slots__ = ("_cipher",)

    def __init__(self, master_key: bytes):
        if len(master_key) != MASTER_KEY_LENGTH:
            raise ConfigurationError(
                f"Master key must be {MASTER_KEY_LENGTH} bytes, got {len(master_key)}"
            )
        self._cipher = AESGCM(derive_key(master_key))

    @classmethod
    def from_settings(cls, settings: SecuritySettings) -> "CredentialVault":
        """Build a vault from environment settings, failing fast on bad keys."""
        return cls(settings.load_master_key())

    def __repr__(self) -> str:
        return "CredentialVault(<key hidden>)"

    def encrypt(self, plaintext: Union[str, bytes]) -> str:
        """
        Encrypt a secret.

        Args:
            plaintext: Secret text or bytes

        Returns:
            Base64 text of iv || tag || ciphertext
        """
        data = plaintext.encode("utf-8") if isinstance(plaintext, str) else plaintext
        iv = os.urandom(IV_SIZE)
        sealed = self._cipher.encrypt(iv, data, None)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return base64.b64encode(iv + tag + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> bytes:
        """
        Decrypt and authenticate a blob produced by encrypt().

        Args:
            blob: Base64 text of iv || tag || ciphertext

        Returns:
            Plaintext bytes

        Raises:
            DecryptionError: If the blob is malformed or the tag does not verify
        """
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("Secret is not valid base64") from e

        # Reject non-canonical encodings so the text form is as tamper-evident
        # as the bytes it carries
        if base64.b64encode(raw).decode("ascii") != blob:
            raise DecryptionError("Secret encoding is not canonical")

        if len(raw) < IV_SIZE + TAG_SIZE:
            raise DecryptionError(
                f"Secret too short: {len(raw)} bytes (minimum {IV_SIZE + TAG_SIZE})"
            )

        iv = raw[:IV_SIZE]
        tag = raw[IV_SIZE:IV_SIZE + TAG_SIZE]
        ciphertext = raw[IV_SIZE + TAG_SIZE:]

        try:
            return self._cipher.decrypt(iv, ciphertext + tag, None)
        except InvalidTag as e:
            logger.warning("secret_authentication_failed")
            raise DecryptionError("Secret failed authentication") from e

    def decrypt_text(self, blob: str) -> str:
        """Decrypt a blob and decode it as UTF-8 text."""
        plaintext = self.decrypt(blob)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Secret is not valid UTF-8 text") from e
