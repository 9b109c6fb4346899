"""Credential broker settings.

Module constants are fixed defaults. ``BrokerConfig.from_env`` reads the
``CREDENTIALS_*`` environment variables and validates them together with
the vault configuration for a broker instance.
"""
import os
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .vault.config import VaultConfig

SESSION_DURATION_ENV = "CREDENTIALS_SESSION_DURATION"
REQUEST_TIMEOUT_ENV = "CREDENTIALS_REQUEST_TIMEOUT"
CACHE_TTL_ENV = "CREDENTIALS_CACHE_TTL"

# AssumeRole session length, in seconds. STS minimum is 900.
ASSUME_ROLE_DURATION = 900
MIN_SESSION_DURATION = 900
MAX_SESSION_DURATION = 43200

REQUEST_TIMEOUT = 30.0

# 0 disables the assumed-role credential cache.
CREDENTIALS_CACHE_TTL = 0
CREDENTIALS_CACHE_SKEW = 60

DEFAULT_ROLE_SESSION_NAME = "navigator-credentials"


class BrokerConfig(BaseModel):
    """Validated broker configuration."""

    vault: VaultConfig
    session_duration: int = Field(
        default=ASSUME_ROLE_DURATION,
        ge=MIN_SESSION_DURATION,
        le=MAX_SESSION_DURATION,
    )
    request_timeout: float = Field(default=REQUEST_TIMEOUT, gt=0)
    cache_ttl: int = Field(default=CREDENTIALS_CACHE_TTL, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_cache_ttl(self) -> "BrokerConfig":
        """Cached role credentials must outlive the expiry skew but not the session."""
        if self.cache_ttl > self.session_duration:
            raise ValueError(
                f"cache_ttl {self.cache_ttl} exceeds session_duration "
                f"{self.session_duration}"
            )
        if 0 < self.cache_ttl <= CREDENTIALS_CACHE_SKEW:
            raise ValueError(
                f"cache_ttl {self.cache_ttl} must be 0 or greater than "
                f"{CREDENTIALS_CACHE_SKEW}"
            )
        return self

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "BrokerConfig":
        """Create BrokerConfig by loading values from environment.

        Unset variables keep their defaults; malformed ones raise a
        ``ValidationError`` naming the field.

        Returns:
            Populated BrokerConfig instance.
        """
        env = os.environ if environ is None else environ
        values = {"vault": VaultConfig.from_env(env)}
        for name, field in (
            (SESSION_DURATION_ENV, "session_duration"),
            (REQUEST_TIMEOUT_ENV, "request_timeout"),
            (CACHE_TTL_ENV, "cache_ttl"),
        ):
            if env.get(name):
                values[field] = env[name]
        return cls(**values)
