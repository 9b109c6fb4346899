"""Data models for secret records, access keys and resolved credentials.

Access key records are a tagged variant: :class:`DirectCredential` is used
as-is, :class:`AssumableCredential` is always exchanged for role credentials.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from .conf import DEFAULT_ROLE_SESSION_NAME
from .vault.crypto import CipherText

AccessKeyRef = str


@dataclass(frozen=True)
class SecretScope:
    """The (name, tenant, caller) triple a secret is registered under."""

    name: str
    tenant_id: str
    caller_id: str

    def __post_init__(self) -> None:
        for attr in ("name", "tenant_id", "caller_id"):
            if not getattr(self, attr):
                raise ValueError(f"Secret scope requires a non-empty {attr}")

    def __str__(self) -> str:
        return f"{self.name}@{self.tenant_id}/{self.caller_id}"


@dataclass(frozen=True)
class SecretRecord:
    """Metadata pointing a scoped secret name to a remote secret."""

    name: str
    tenant_id: str
    caller_id: str
    access_key_ref: AccessKeyRef
    remote_secret_id: str
    endpoint_url: Optional[str] = None

    @property
    def scope(self) -> SecretScope:
        return SecretScope(self.name, self.tenant_id, self.caller_id)


@dataclass(frozen=True)
class _AccessKey:
    ref: AccessKeyRef
    access_key: CipherText
    secret_key: CipherText
    region: str


@dataclass(frozen=True)
class DirectCredential(_AccessKey):
    """Access key record whose decrypted pair is used directly."""


@dataclass(frozen=True)
class AssumableCredential(_AccessKey):
    """Access key record that is exchanged for role credentials via AssumeRole."""

    role_arn: str
    role_session_name: str = DEFAULT_ROLE_SESSION_NAME

    def __post_init__(self) -> None:
        if not self.role_arn:
            raise ValueError("AssumableCredential requires a role_arn")


AccessKeyRecord = Union[DirectCredential, AssumableCredential]


def make_access_key_record(
    ref: AccessKeyRef,
    access_key: CipherText,
    secret_key: CipherText,
    region: str,
    role_arn: Optional[str] = None,
    role_session_name: Optional[str] = None,
) -> AccessKeyRecord:
    """Build the record variant matching the presence of a role ARN."""
    role_arn = (role_arn or "").strip()
    if not role_arn:
        return DirectCredential(
            ref=ref, access_key=access_key, secret_key=secret_key, region=region
        )
    return AssumableCredential(
        ref=ref,
        access_key=access_key,
        secret_key=secret_key,
        region=region,
        role_arn=role_arn,
        role_session_name=(role_session_name or "").strip() or DEFAULT_ROLE_SESSION_NAME,
    )


@dataclass(frozen=True)
class ResolvedCredentials:
    """Ephemeral AWS credentials for a single broker operation.

    Key material is masked in ``__repr__`` to keep it out of logs and
    tracebacks.
    """

    access_key: str
    secret_key: str
    region: str
    session_token: Optional[str] = None
    expiration: Optional[datetime] = None

    @property
    def is_temporary(self) -> bool:
        return self.session_token is not None

    def __repr__(self) -> str:
        return (
            f"ResolvedCredentials(access_key=***, secret_key=***, "
            f"region={self.region!r}, temporary={self.is_temporary}, "
            f"expiration={self.expiration!r})"
        )
