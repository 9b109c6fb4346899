"""
Credential Resolver: turns an access key ref into usable AWS credentials.

Resolution order:
    1. load the access key record
    2. decrypt access key and secret key (each with its own IV)
    3. DirectCredential: return the decrypted pair
       AssumableCredential: exchange the pair for role credentials via STS

Role credentials always take precedence; the long-lived pair is only the
authorization basis for the AssumeRole call and is never returned.

Security Note:
    Never log decrypted keys or session tokens. Only log refs, role ARNs and
    response statuses.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .cache import CredentialCache
from .conf import (
    ASSUME_ROLE_DURATION,
    MAX_SESSION_DURATION,
    MIN_SESSION_DURATION,
    REQUEST_TIMEOUT,
)
from .exceptions import CredentialsError, RecordLoadError, RoleAssumptionError
from .models import (
    AccessKeyRef,
    AssumableCredential,
    DirectCredential,
    ResolvedCredentials,
)
from .registry import RecordRepository
from .transport import ASSUME_ROLE, STS, RemoteRequest, Transport, call
from .vault.crypto import CipherService

logger = logging.getLogger("navigator.credentials")


def _parse_expiration(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        # fromisoformat only accepts a trailing "Z" from Python 3.11 on
        expiration = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        return expiration
    raise ValueError(f"Unsupported Expiration value type {type(value).__name__}")


class CredentialResolver:
    """Resolves access key records into :class:`ResolvedCredentials`.

    Args:
        repository: Source of access key records.
        cipher: CipherService holding the master key.
        transport: Transport used for the AssumeRole call.
        session_duration: AssumeRole ``DurationSeconds``.
        timeout: Upper bound, in seconds, for the AssumeRole call.
        cache: Optional cache of assumed-role credentials.
    """

    def __init__(
        self,
        repository: RecordRepository,
        cipher: CipherService,
        transport: Transport,
        session_duration: int = ASSUME_ROLE_DURATION,
        timeout: Optional[float] = REQUEST_TIMEOUT,
        cache: Optional[CredentialCache] = None,
    ) -> None:
        if not MIN_SESSION_DURATION <= session_duration <= MAX_SESSION_DURATION:
            raise ValueError(
                f"session_duration must be between {MIN_SESSION_DURATION} and "
                f"{MAX_SESSION_DURATION} seconds, got {session_duration}"
            )
        self._repository = repository
        self._cipher = cipher
        self._transport = transport
        self._session_duration = session_duration
        self._timeout = timeout
        self._cache = cache

    async def resolve(self, ref: AccessKeyRef) -> ResolvedCredentials:
        """Resolve the credentials for access key ``ref``.

        Raises:
            RecordLoadError: If the record does not exist.
            DecryptionError: If either key fails to decrypt.
            RoleAssumptionError: If the AssumeRole exchange fails.
        """
        record = await self._repository.load_access_key(ref)
        if record is None:
            logger.error("Access key record %s not found", ref)
            raise RecordLoadError(ref, operation="resolve")

        access_key = self._cipher.decrypt(
            record.access_key.ciphertext, record.access_key.iv, field="access_key"
        )
        secret_key = self._cipher.decrypt(
            record.secret_key.ciphertext, record.secret_key.iv, field="secret_key"
        )
        base = ResolvedCredentials(
            access_key=access_key, secret_key=secret_key, region=record.region
        )

        if isinstance(record, AssumableCredential):
            if self._cache is not None:
                return await self._cache.get_or_fetch(
                    ref,
                    lambda: self.assume_role(record, base),
                    role_arn=record.role_arn,
                )
            return await self.assume_role(record, base)
        if isinstance(record, DirectCredential):
            logger.debug("Using direct credentials for access key %s", ref)
            return base
        raise TypeError(f"Unknown access key record type {type(record).__name__}")

    async def assume_role(
        self, record: AssumableCredential, basis: ResolvedCredentials
    ) -> ResolvedCredentials:
        """Exchange ``basis`` for the role credentials of ``record``.

        Raises:
            RoleAssumptionError: On transport failure, timeout, a non-2xx
                status or a response missing the credentials triple.
        """
        request = RemoteRequest(
            service=STS,
            action=ASSUME_ROLE,
            region=record.region,
            credentials=basis,
            params={
                "RoleArn": record.role_arn,
                "RoleSessionName": record.role_session_name,
                "DurationSeconds": self._session_duration,
            },
        )
        logger.debug(
            "Assuming role %s for access key %s", record.role_arn, record.ref
        )
        try:
            response = await call(self._transport, request, self._timeout)
        except asyncio.TimeoutError as err:
            raise RoleAssumptionError(
                f"AssumeRole for {record.role_arn} timed out after {self._timeout}s",
                ref=record.ref,
                role_arn=record.role_arn,
                operation=ASSUME_ROLE,
            ) from err
        except CredentialsError:
            raise
        except Exception as err:
            raise RoleAssumptionError(
                f"AssumeRole for {record.role_arn} failed: {type(err).__name__}",
                ref=record.ref,
                role_arn=record.role_arn,
                operation=ASSUME_ROLE,
            ) from err

        if not response.ok:
            logger.error(
                "AssumeRole for %s returned status %s", record.role_arn, response.status
            )
            raise RoleAssumptionError(
                f"AssumeRole for {record.role_arn} returned status {response.status}",
                ref=record.ref,
                role_arn=record.role_arn,
                status=response.status,
                operation=ASSUME_ROLE,
            )
        try:
            result = response.json()["AssumeRoleResponse"]["AssumeRoleResult"]
            creds = result["Credentials"]
            access_key = creds["AccessKeyId"]
            secret_key = creds["SecretAccessKey"]
            session_token = creds["SessionToken"]
            if not all(
                isinstance(v, str) and v for v in (access_key, secret_key, session_token)
            ):
                raise ValueError("empty or non-string credential field")
            expiration = _parse_expiration(creds.get("Expiration"))
        except (KeyError, TypeError, ValueError, AttributeError) as err:
            raise RoleAssumptionError(
                f"AssumeRole for {record.role_arn} returned a malformed response",
                ref=record.ref,
                role_arn=record.role_arn,
                status=response.status,
                operation=ASSUME_ROLE,
            ) from err

        logger.info(
            "Assumed role %s for access key %s", record.role_arn, record.ref
        )
        return ResolvedCredentials(
            access_key=access_key,
            secret_key=secret_key,
            session_token=session_token,
            region=record.region,
            expiration=expiration,
        )
