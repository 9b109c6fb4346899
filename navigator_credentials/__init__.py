"""Navigator Credentials.

Credential broker in front of AWS Secrets Manager: resolves a secret name
scoped to a tenant and caller, decrypts the stored access key, optionally
assumes a role, and gets or puts the secret value.
"""
from .version import __version__
from .conf import BrokerConfig
from .exceptions import (
    CredentialsError,
    SecretNotFoundError,
    RegistryIntegrityError,
    RecordLoadError,
    CipherError,
    EncryptionError,
    DecryptionError,
    RoleAssumptionError,
    RemoteProtocolError,
)
from .models import (
    SecretScope,
    SecretRecord,
    DirectCredential,
    AssumableCredential,
    ResolvedCredentials,
    make_access_key_record,
)
from .vault import CipherService, CipherText, VaultConfig
from .registry import RecordRepository, SecretRegistry
from .resolver import CredentialResolver
from .cache import CredentialCache
from .transport import RemoteRequest, RemoteResponse, Transport
from .storage import PgRecordRepository, seal_access_key
from .proxy import SecretsProxy, encode_secret_string

__all__ = [
    "__version__",
    "BrokerConfig",
    "CredentialsError",
    "SecretNotFoundError",
    "RegistryIntegrityError",
    "RecordLoadError",
    "CipherError",
    "EncryptionError",
    "DecryptionError",
    "RoleAssumptionError",
    "RemoteProtocolError",
    "SecretScope",
    "SecretRecord",
    "DirectCredential",
    "AssumableCredential",
    "ResolvedCredentials",
    "make_access_key_record",
    "CipherService",
    "CipherText",
    "VaultConfig",
    "RecordRepository",
    "SecretRegistry",
    "CredentialResolver",
    "CredentialCache",
    "RemoteRequest",
    "RemoteResponse",
    "Transport",
    "PgRecordRepository",
    "seal_access_key",
    "SecretsProxy",
    "encode_secret_string",
]
