"""Tests for encrypted application settings."""

import pytest

from appeal_prospect.auth import CredentialVault
from appeal_prospect.core.exceptions import ValidationError
from appeal_prospect.core.secret_settings import (
    MASKED_VALUE,
    InMemorySecretsStore,
    SecretSettings,
)

OPENAI_KEY = "sk-" + "b" * 45


class TestSecretSettings:
    """Tests for get/set with encryption."""

    def test_plain_setting(self, secret_settings):
        """Test that unencrypted settings are stored as-is."""
        secret_settings.set("site_name", "Appeal Prospect")
        assert secret_settings.get("site_name") == "Appeal Prospect"
        assert secret_settings.store.get("site_name").value == "Appeal Prospect"

    def test_encrypted_setting(self, secret_settings):
        """Test that encrypted settings never hit the store in plaintext."""
        secret_settings.set("smtp_password", "hunter2", is_encrypted=True)
        stored = secret_settings.store.get("smtp_password")
        assert stored.is_encrypted is True
        assert "hunter2" not in stored.value
        assert secret_settings.get("smtp_password") == "hunter2"

    def test_missing_returns_default(self, secret_settings):
        """Test that unknown keys return the default."""
        assert secret_settings.get("missing") is None
        assert secret_settings.get("missing", "fallback") == "fallback"

    def test_undecryptable_returns_default(self, secret_settings, clock):
        """Test that a value sealed with another key falls back to the default."""
        foreign = CredentialVault(b"\x01" * 32)
        secret_settings.store.set("token", foreign.encrypt("x"), True)
        assert secret_settings.get("token", "fallback") == "fallback"

    def test_tampered_returns_default(self, secret_settings):
        """Test that a tampered ciphertext is treated as missing."""
        secret_settings.set("k", "v", is_encrypted=True)
        stored = secret_settings.store.get("k")
        secret_settings.store.set("k", stored.value[:-4] + "AAAA", True)
        assert secret_settings.get("k") is None

    def test_upsert_keeps_description(self, secret_settings):
        """Test that updating a value keeps an existing description."""
        secret_settings.set("k", "1", description="A setting")
        secret_settings.set("k", "2")
        assert secret_settings.store.get("k").description == "A setting"
        assert secret_settings.get("k") == "2"


class TestApiKeys:
    """Tests for provider API key helpers."""

    def test_set_and_get(self, secret_settings):
        """Test that API keys are validated, encrypted and readable."""
        secret_settings.set_api_key("openai", OPENAI_KEY)
        record = secret_settings.store.get("openai_api_key")
        assert record.is_encrypted is True
        assert OPENAI_KEY not in record.value
        assert secret_settings.get_api_key("openai") == OPENAI_KEY

    def test_is_configured(self, secret_settings):
        """Test configuration status per provider."""
        assert secret_settings.is_configured("openai") is False
        secret_settings.set_api_key("openai", OPENAI_KEY)
        assert secret_settings.is_configured("openai") is True
        assert secret_settings.is_configured("perplexity") is False

    def test_invalid_key_not_stored(self, secret_settings):
        """Test that keys failing the format policy are not stored."""
        with pytest.raises(ValidationError):
            secret_settings.set_api_key("openai", "not-a-key")
        assert secret_settings.store.get("openai_api_key") is None

    def test_list_masks_encrypted_values(self, secret_settings):
        """Test that listings never expose encrypted values."""
        secret_settings.set("site_name", "Appeal Prospect")
        secret_settings.set_api_key("openai", OPENAI_KEY)
        listed = {r.key: r for r in secret_settings.list_settings()}
        assert listed["openai_api_key"].value == MASKED_VALUE
        assert listed["site_name"].value == "Appeal Prospect"


class TestInMemorySecretsStore:
    """Tests for the reference store."""

    def test_all_sorted(self, clock):
        """Test that all() returns records ordered by key."""
        store = InMemorySecretsStore(clock)
        store.set("b", "2", False)
        store.set("a", "1", False)
        assert [r.key for r in store.all()] == ["a", "b"]

    def test_repr_hides_value(self, clock):
        """Test that record reprs do not include the value."""
        store = InMemorySecretsStore(clock)
        record = store.set("k", "super-secret", False)
        assert "super-secret" not in repr(record)

    def test_facade_uses_store_contract(self, vault, clock):
        """Test that the facade works over any store instance."""
        settings = SecretSettings(InMemorySecretsStore(clock), vault)
        settings.set("x", "y", is_encrypted=True)
        assert settings.get("x") == "y"
