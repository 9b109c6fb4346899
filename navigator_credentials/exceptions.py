"""Credential broker exceptions.

Every error carries the operation and stage where it happened, plus the
scope identifiers known at that point. None of them ever holds key material
or secret payloads.
"""
from typing import Any, Optional


class CredentialsError(Exception):
    """Base exception for credential broker errors."""

    stage: str = "broker"

    def __init__(self, message: str, *, operation: Optional[str] = None, **detail: Any) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(stage={self.stage!r}, "
            f"operation={self.operation!r}, detail={self.detail!r})"
        )

    def bind_scope(self, scope: Any, operation: str) -> "CredentialsError":
        """Attach the broker operation and the secret scope it ran for.

        The internal step that raised, if different, is kept as ``step``.
        """
        if self.operation and self.operation != operation:
            self.detail.setdefault("step", self.operation)
        self.operation = operation
        self.detail.update(
            name=scope.name, tenant_id=scope.tenant_id, caller_id=scope.caller_id
        )
        return self


class SecretNotFoundError(CredentialsError):
    """No secret record matches the (name, tenant, caller) scope."""

    stage = "lookup"

    def __init__(self, scope: Any, operation: Optional[str] = None) -> None:
        self.scope = scope
        super().__init__(
            f"No secret found with name {scope.name} that is available to "
            f"caller {scope.caller_id} and tenant {scope.tenant_id}.",
            operation=operation,
            name=scope.name,
            tenant_id=scope.tenant_id,
            caller_id=scope.caller_id,
        )


class RegistryIntegrityError(CredentialsError):
    """More than one secret record matches a scope that must be unique."""

    stage = "lookup"

    def __init__(self, scope: Any, matches: int, operation: Optional[str] = None) -> None:
        self.scope = scope
        self.matches = matches
        super().__init__(
            f"Secret {scope.name} for caller {scope.caller_id} and tenant "
            f"{scope.tenant_id} matches {matches} records, expected exactly one",
            operation=operation,
            name=scope.name,
            tenant_id=scope.tenant_id,
            caller_id=scope.caller_id,
        )


class RecordLoadError(CredentialsError):
    """Referenced access key record does not exist."""

    stage = "load"

    def __init__(self, ref: Any, operation: Optional[str] = None) -> None:
        self.ref = ref
        super().__init__(
            f"Access key record {ref!r} could not be loaded",
            operation=operation,
            ref=ref,
        )


class CipherError(CredentialsError):
    """Base for encryption/decryption failures."""

    stage = "cipher"


class EncryptionError(CipherError):
    """Plaintext could not be encrypted."""


class DecryptionError(CipherError):
    """Ciphertext, IV and master key do not match up."""

    def __init__(self, message: str, *, field: Optional[str] = None, **kwargs: Any) -> None:
        self.field = field
        super().__init__(message, field=field, **kwargs)


class RoleAssumptionError(CredentialsError):
    """The AssumeRole exchange failed or returned a malformed response."""

    stage = "assume_role"

    def __init__(
        self,
        message: str,
        *,
        ref: Any = None,
        role_arn: Optional[str] = None,
        status: Optional[int] = None,
        operation: Optional[str] = None,
    ) -> None:
        self.ref = ref
        self.role_arn = role_arn
        self.status = status
        super().__init__(
            message, operation=operation, ref=ref, role_arn=role_arn, status=status
        )


class RemoteProtocolError(CredentialsError):
    """A GetSecretValue/PutSecretValue call failed or returned a malformed body."""

    stage = "remote"

    def __init__(
        self,
        message: str,
        *,
        action: str,
        secret_id: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        self.action = action
        self.secret_id = secret_id
        self.status = status
        super().__init__(
            message, operation=action, secret_id=secret_id, status=status
        )
