"""Credentials Vault: Encryption at rest for stored AWS access keys.

Security Note (Threat Model):
    Access keys are decrypted in process memory only for the duration of
    a single credential resolution. A memory dump of the application
    process taken during that window could expose them.
    This is an accepted limitation; mitigation requires HSM/secure
    enclave integration which is out of scope.
"""

from .crypto import CipherService, CipherText, derive_key
from .config import VaultConfig, load_master_key, generate_master_key

__all__ = [
    "CipherService",
    "CipherText",
    "derive_key",
    "VaultConfig",
    "load_master_key",
    "generate_master_key",
]
