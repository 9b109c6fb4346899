"""Tests for BrokerConfig."""
import pytest
from pydantic import ValidationError

from navigator_credentials.conf import BrokerConfig
from navigator_credentials.vault import VaultConfig

from tests.factories import MASTER_KEY


@pytest.fixture
def vault():
    return VaultConfig(master_key=MASTER_KEY)


class TestBrokerConfig:

    def test_defaults(self, vault):
        """Unspecified settings fall back to the module defaults."""
        config = BrokerConfig(vault=vault)
        assert config.session_duration == 900
        assert config.request_timeout == 30.0
        assert config.cache_ttl == 0

    def test_from_env(self, master_key, master_key_b64):
        """All settings are read from CREDENTIALS_* variables."""
        config = BrokerConfig.from_env({
            "CREDENTIALS_MASTER_KEY": master_key_b64,
            "CREDENTIALS_SESSION_DURATION": "1800",
            "CREDENTIALS_REQUEST_TIMEOUT": "5",
            "CREDENTIALS_CACHE_TTL": "600",
        })
        assert config.vault.master_key == master_key
        assert config.session_duration == 1800
        assert config.request_timeout == 5.0
        assert config.cache_ttl == 600

    def test_from_env_unset_keeps_defaults(self, master_key_b64):
        """Only the master key is required in the environment."""
        config = BrokerConfig.from_env({"CREDENTIALS_MASTER_KEY": master_key_b64})
        assert config.session_duration == 900
        assert config.request_timeout == 30.0
        assert config.cache_ttl == 0

    @pytest.mark.parametrize("name", [
        "CREDENTIALS_SESSION_DURATION",
        "CREDENTIALS_REQUEST_TIMEOUT",
        "CREDENTIALS_CACHE_TTL",
    ])
    def test_from_env_malformed_value(self, master_key_b64, name):
        """A malformed variable fails validation instead of import."""
        with pytest.raises(ValidationError):
            BrokerConfig.from_env({
                "CREDENTIALS_MASTER_KEY": master_key_b64,
                name: "fifteen",
            })

    @pytest.mark.parametrize("duration", [899, 43201])
    def test_session_duration_bounds(self, vault, duration):
        """STS session limits are enforced."""
        with pytest.raises(ValidationError):
            BrokerConfig(vault=vault, session_duration=duration)

    def test_cache_cannot_outlive_session(self, vault):
        """cache_ttl above the session duration is rejected."""
        with pytest.raises(ValidationError):
            BrokerConfig(vault=vault, cache_ttl=901)

    @pytest.mark.parametrize("ttl", [1, 60])
    def test_cache_ttl_within_skew_rejected(self, vault, ttl):
        """A cache_ttl the expiry skew would consume is rejected."""
        with pytest.raises(ValidationError):
            BrokerConfig(vault=vault, cache_ttl=ttl)

    def test_cache_ttl_just_above_skew(self, vault):
        """61 seconds is the smallest enabled cache_ttl."""
        assert BrokerConfig(vault=vault, cache_ttl=61).cache_ttl == 61

    def test_timeout_positive(self, vault):
        """A zero request timeout is rejected."""
        with pytest.raises(ValidationError):
            BrokerConfig(vault=vault, request_timeout=0)
