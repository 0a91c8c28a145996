"""Tests for input policies."""

import pytest

from appeal_prospect.auth import (
    validate_api_key,
    validate_email,
    validate_password_strength,
)
from appeal_prospect.core.exceptions import ValidationError


class TestValidateEmail:
    """Tests for email validation."""

    @pytest.mark.parametrize(
        "email,expected",
        [
            ("counsel@example.com", "counsel@example.com"),
            ("  Counsel@Example.COM ", "counsel@example.com"),
            ("first.last+appeals@law-firm.co.uk", "first.last+appeals@law-firm.co.uk"),
        ],
    )
    def test_valid(self, email, expected):
        """Test that valid addresses are normalized."""
        assert validate_email(email) == expected

    @pytest.mark.parametrize(
        "email",
        [
            "",
            "   ",
            "no-at-sign",
            "a@b",
            "two@@example.com",
            ".lead@example.com",
            "trail.@example.com",
            "dou..ble@example.com",
            "<script>@example.com",
            "quote'd@example.com",
            "a" * 250 + "@example.com",
        ],
    )
    def test_invalid(self, email):
        """Test that malformed or unsafe addresses are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            validate_email(email)
        assert exc_info.value.field == "email"


class TestValidatePasswordStrength:
    """Tests for the password policy."""

    def test_valid(self):
        """Test that a compliant password passes."""
        assert validate_password_strength("Correct1Horse") == "Correct1Horse"

    @pytest.mark.parametrize(
        "password,fragment",
        [
            ("", "required"),
            ("Ab1", "at least 8"),
            ("Aa1" + "x" * 130, "too long"),
            ("ALLUPPER1", "lowercase"),
            ("alllower1", "uppercase"),
            ("NoDigitsHere", "number"),
        ],
    )
    def test_invalid(self, password, fragment):
        """Test that each rule reports its own message."""
        with pytest.raises(ValidationError) as exc_info:
            validate_password_strength(password)
        assert fragment in str(exc_info.value)
        assert exc_info.value.field == "password"


class TestValidateApiKey:
    """Tests for provider API key validation."""

    def test_openai_valid(self):
        """Test that a well-formed OpenAI key passes and is trimmed."""
        key = "sk-" + "a" * 40
        assert validate_api_key(f"  {key}  ", "openai") == key

    def test_openai_prefix(self):
        """Test that OpenAI keys must start with sk-."""
        with pytest.raises(ValidationError, match="sk-"):
            validate_api_key("pk-" + "a" * 40, "openai")

    def test_openai_too_short(self):
        """Test that short OpenAI keys are rejected."""
        with pytest.raises(ValidationError):
            validate_api_key("sk-short", "openai")

    def test_perplexity_valid(self):
        """Test that a plausible Perplexity key passes."""
        assert validate_api_key("pplx-0123456789", "perplexity") == "pplx-0123456789"

    def test_perplexity_too_short(self):
        """Test that short Perplexity keys are rejected."""
        with pytest.raises(ValidationError):
            validate_api_key("pplx-1", "perplexity")

    @pytest.mark.parametrize("key", ["", "   ", "sk-" + "a" * 30 + "<", 'sk-"' + "a" * 30])
    def test_invalid(self, key):
        """Test that empty keys and unsafe characters are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            validate_api_key(key, "openai")
        assert exc_info.value.field == "api_key"
