"""
Vault Configuration: Master key loading and validated settings.

Reads the master key from the environment:
    CREDENTIALS_MASTER_KEY = <base64-encoded 32-byte key>
    CREDENTIALS_CIPHER_BACKEND = aesgcm | chacha20

Security Note:
    Never log key material. Only log key lengths and backend names.
"""
import os
import base64
import secrets
import logging
import binascii
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("navigator.credentials")

MASTER_KEY_ENV = "CREDENTIALS_MASTER_KEY"
CIPHER_BACKEND_ENV = "CREDENTIALS_CIPHER_BACKEND"
KEY_LENGTH = 32  # AES-256

CIPHER_BACKENDS = ("aesgcm", "chacha20")


def load_master_key(environ: Optional[dict] = None) -> bytes:
    """Load the master key from the CREDENTIALS_MASTER_KEY environment variable.

    The value must be base64-encoded and decode to exactly 32 bytes.

    Args:
        environ: Mapping to read from, defaults to ``os.environ``.

    Returns:
        Raw 32-byte master key.

    Raises:
        RuntimeError: If the master key is not set.
        ValueError: If the key is not valid base64 or not 32 bytes long.
    """
    env = os.environ if environ is None else environ
    value = env.get(MASTER_KEY_ENV)
    if not value:
        raise RuntimeError(
            "No credentials master key found in environment. "
            f"Set {MASTER_KEY_ENV}=<base64-encoded-32-byte-key>"
        )
    try:
        key_bytes = base64.b64decode(value, validate=True)
    except binascii.Error as err:
        raise ValueError(f"{MASTER_KEY_ENV} is not valid base64") from err
    if len(key_bytes) != KEY_LENGTH:
        raise ValueError(
            f"{MASTER_KEY_ENV} must decode to exactly {KEY_LENGTH} bytes, "
            f"got {len(key_bytes)}"
        )
    logger.debug("Loaded credentials master key from %s", MASTER_KEY_ENV)
    return key_bytes


def generate_master_key() -> str:
    """Generate a random 32-byte master key and return as base64 string.

    This is a utility for operators to generate new keys.

    Returns:
        Base64-encoded 32-byte key string.
    """
    return base64.b64encode(secrets.token_bytes(KEY_LENGTH)).decode("ascii")


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    master_key: bytes = Field(repr=False)
    cipher_backend: str = Field(default="aesgcm")

    model_config = {"frozen": True}

    @field_validator("master_key")
    @classmethod
    def validate_master_key(cls, v: bytes) -> bytes:
        """Master key must be exactly 32 raw bytes."""
        if len(v) != KEY_LENGTH:
            raise ValueError(
                f"master_key must be exactly {KEY_LENGTH} bytes, got {len(v)}"
            )
        return v

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in CIPHER_BACKENDS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        env = os.environ if environ is None else environ
        return cls(
            master_key=load_master_key(env),
            cipher_backend=env.get(CIPHER_BACKEND_ENV, "aesgcm"),
        )
