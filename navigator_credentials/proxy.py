"""
Secrets Proxy: get/put secret values on AWS Secrets Manager by scoped name.

Provides the public API of the broker:
- ``get_secret(name, tenant_id, caller_id)``: current ``SecretString``
- ``update_secret(name, tenant_id, caller_id, content)``: new ``VersionId``

Each call does its own lookup and credential resolution; nothing is shared
between calls except the (optional) role credential cache. No call is
retried: the remote store is the single source of truth and any failure
surfaces immediately.

Security Note:
    Never log secret payloads or credentials. Only log scopes, secret ids,
    actions and statuses.
"""
import asyncio
import logging
from typing import Any, Mapping, Optional

import orjson

from .cache import CredentialCache
from .conf import BrokerConfig, REQUEST_TIMEOUT
from .exceptions import CredentialsError, RemoteProtocolError
from .models import SecretRecord
from .registry import RecordRepository, SecretRegistry
from .resolver import CredentialResolver
from .transport import (
    GET_SECRET_VALUE,
    PUT_SECRET_VALUE,
    SECRETS_MANAGER,
    RemoteRequest,
    RemoteResponse,
    Transport,
    call,
)
from .vault.crypto import CipherService

logger = logging.getLogger("navigator.credentials")


def encode_secret_string(content: Mapping[str, Any]) -> str:
    """Serialize ``content`` to compact JSON with every quote escaped.

    The result is embedded by the transport as a quoted string field.
    """
    if not isinstance(content, Mapping):
        raise TypeError(
            f"Secret content must be a mapping, got {type(content).__name__}"
        )
    return orjson.dumps(dict(content)).decode("utf-8").replace('"', '\\"')


class SecretsProxy:
    """Broker front door: resolves scoped names and talks to Secrets Manager.

    Args:
        registry: SecretRegistry used to find the secret record.
        resolver: CredentialResolver for the record's access key.
        transport: Transport used for the Secrets Manager calls.
        timeout: Upper bound, in seconds, for each Secrets Manager call.
    """

    def __init__(
        self,
        registry: SecretRegistry,
        resolver: CredentialResolver,
        transport: Transport,
        timeout: Optional[float] = REQUEST_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._transport = transport
        self._timeout = timeout

    @classmethod
    def from_config(
        cls,
        config: BrokerConfig,
        repository: RecordRepository,
        transport: Transport,
    ) -> "SecretsProxy":
        """Wire registry, cipher, resolver and cache from a BrokerConfig."""
        cipher = CipherService.from_config(config.vault)
        cache = CredentialCache(config.cache_ttl) if config.cache_ttl else None
        resolver = CredentialResolver(
            repository,
            cipher,
            transport,
            session_duration=config.session_duration,
            timeout=config.request_timeout,
            cache=cache,
        )
        return cls(
            SecretRegistry(repository),
            resolver,
            transport,
            timeout=config.request_timeout,
        )

    async def _send(
        self, record: SecretRecord, action: str, params: Mapping[str, Any], key: str
    ) -> str:
        """Resolve credentials for ``record``, call ``action`` and return ``key``.

        Any broker error raised on the way is tagged with the record's scope
        and the broker operation before it propagates.
        """
        try:
            body = await self._exchange(record, action, params)
            return self._field(body, key, action, record.remote_secret_id)
        except CredentialsError as err:
            err.bind_scope(record.scope, action)
            raise

    async def _exchange(
        self, record: SecretRecord, action: str, params: Mapping[str, Any]
    ) -> dict:
        credentials = await self._resolver.resolve(record.access_key_ref)
        request = RemoteRequest(
            service=SECRETS_MANAGER,
            action=action,
            region=credentials.region,
            credentials=credentials,
            params=params,
            endpoint=record.endpoint_url,
        )
        secret_id = record.remote_secret_id
        try:
            response: RemoteResponse = await call(self._transport, request, self._timeout)
        except asyncio.TimeoutError as err:
            raise RemoteProtocolError(
                f"{action} for {secret_id} timed out after {self._timeout}s",
                action=action,
                secret_id=secret_id,
            ) from err
        except CredentialsError:
            raise
        except Exception as err:
            raise RemoteProtocolError(
                f"{action} for {secret_id} failed: {type(err).__name__}",
                action=action,
                secret_id=secret_id,
            ) from err

        if not response.ok:
            logger.error(
                "%s for %s returned status %s", action, secret_id, response.status
            )
            raise RemoteProtocolError(
                f"{action} for {secret_id} returned status {response.status}",
                action=action,
                secret_id=secret_id,
                status=response.status,
            )
        try:
            body = response.json()
        except ValueError as err:
            raise RemoteProtocolError(
                f"{action} for {secret_id} returned a body that is not JSON",
                action=action,
                secret_id=secret_id,
                status=response.status,
            ) from err
        if not isinstance(body, dict):
            raise RemoteProtocolError(
                f"{action} for {secret_id} returned a body that is not an object",
                action=action,
                secret_id=secret_id,
                status=response.status,
            )
        return body

    def _field(self, body: dict, key: str, action: str, secret_id: str) -> str:
        value = body.get(key)
        if not isinstance(value, str):
            raise RemoteProtocolError(
                f"{action} for {secret_id} returned no {key}",
                action=action,
                secret_id=secret_id,
            )
        return value

    async def get_secret(self, name: str, tenant_id: str, caller_id: str) -> str:
        """Return the current secret string registered as ``name``.

        Raises:
            SecretNotFoundError: If no secret is registered for this scope.
            CredentialsError: Any later failure, tagged with this scope and
                ``GetSecretValue``.
        """
        record = await self._registry.lookup(
            name, tenant_id, caller_id, operation=GET_SECRET_VALUE
        )
        value = await self._send(
            record,
            GET_SECRET_VALUE,
            {"SecretId": record.remote_secret_id},
            "SecretString",
        )
        logger.info(
            "Retrieved secret %s for caller %s in tenant %s",
            name, caller_id, tenant_id,
        )
        return value

    async def update_secret(
        self,
        name: str,
        tenant_id: str,
        caller_id: str,
        content: Mapping[str, Any],
    ) -> str:
        """Store ``content`` as a new version of the secret registered as ``name``.

        Returns:
            The VersionId of the new secret version.

        Raises:
            SecretNotFoundError: If no secret is registered for this scope.
            CredentialsError: Any later failure, tagged with this scope and
                ``PutSecretValue``.
        """
        secret_string = encode_secret_string(content)
        record = await self._registry.lookup(
            name, tenant_id, caller_id, operation=PUT_SECRET_VALUE
        )
        version_id = await self._send(
            record,
            PUT_SECRET_VALUE,
            {"SecretId": record.remote_secret_id, "SecretString": secret_string},
            "VersionId",
        )
        logger.info(
            "Updated secret %s for caller %s in tenant %s (version %s)",
            name, caller_id, tenant_id, version_id,
        )
        return version_id
