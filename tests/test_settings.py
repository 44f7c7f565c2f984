"""Unit tests for environment-driven settings."""
import pytest

from chatrelay.settings import DEFAULT_BASE_URL, DEFAULT_MODEL, QuotaPolicy, Settings


class TestSettingsFromEnv:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        """Test that an empty environment yields the documented defaults."""
        settings = Settings.from_env({})

        assert settings.gateway.base_url == DEFAULT_BASE_URL
        assert settings.gateway.model == DEFAULT_MODEL
        assert settings.gateway.max_tokens == 4096
        assert settings.gateway.temperature == 0.7
        assert settings.gateway.stop == []
        assert settings.limits.chat_tokens_per_user == 10
        assert settings.limits.search_tokens_per_user == 100
        assert settings.limits.history_window == 10
        assert settings.limits.quota_policy is QuotaPolicy.CHARGE_AFTER
        assert settings.storage.backend == "sqlite"

    def test_overrides(self):
        """Test that every variable is picked up."""
        settings = Settings.from_env({
            "AI_API_KEY": "secret",
            "AI_BASE_URL": "http://localhost:8080/v1/",
            "AI_MODEL": "openai/gpt-4o",
            "AI_MAX_TOKENS": "256",
            "AI_TEMPERATURE": "0.1",
            "AI_STOP_SEQUENCES": "END,STOP",
            "AI_TIMEOUT": "30s",
            "HISTORY_WINDOW": "4",
            "QUOTA_POLICY": "RESERVE",
            "HISTORY_BACKEND": "memory",
        })

        assert settings.gateway.api_key == "secret"
        assert settings.gateway.base_url == "http://localhost:8080/v1"
        assert settings.gateway.model == "openai/gpt-4o"
        assert settings.gateway.max_tokens == 256
        assert settings.gateway.temperature == 0.1
        assert settings.gateway.stop == ["END", "STOP"]
        assert settings.gateway.timeout == 30.0
        assert settings.limits.history_window == 4
        assert settings.limits.quota_policy is QuotaPolicy.RESERVE
        assert settings.storage.backend == "memory"

    def test_api_key_not_in_repr(self):
        """Test that the API key is hidden from repr."""
        settings = Settings.from_env({"AI_API_KEY": "secret"})
        assert "secret" not in repr(settings.gateway)

    @pytest.mark.parametrize("name,value", [
        ("AI_MAX_TOKENS", "lots"),
        ("AI_TEMPERATURE", "warm"),
        ("QUOTA_POLICY", "sometimes"),
    ])
    def test_invalid_values_raise(self, name, value):
        """Test that malformed values are rejected with the variable name."""
        with pytest.raises(ValueError, match=name):
            Settings.from_env({name: value})
