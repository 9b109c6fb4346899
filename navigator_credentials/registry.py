"""Secret Registry: scoped lookup of secret metadata records."""
import logging
from typing import Optional, Protocol, Sequence

from .exceptions import RegistryIntegrityError, SecretNotFoundError
from .models import AccessKeyRecord, AccessKeyRef, SecretRecord, SecretScope

logger = logging.getLogger("navigator.credentials")


class RecordRepository(Protocol):
    """Storage the broker reads secret and access key records from."""

    async def find_secrets(self, scope: SecretScope) -> Sequence[SecretRecord]:
        """Return every record matching name, tenant and caller exactly."""
        ...

    async def load_access_key(self, ref: AccessKeyRef) -> Optional[AccessKeyRecord]:
        """Return the access key record for ``ref``, or None if absent."""
        ...


class SecretRegistry:
    """Resolves a secret name within a tenant and caller scope.

    All three scope fields always take part in the query; there is no
    relaxed matching.
    """

    def __init__(self, repository: RecordRepository) -> None:
        self._repository = repository

    async def lookup(
        self,
        name: str,
        tenant_id: str,
        caller_id: str,
        operation: Optional[str] = None,
    ) -> SecretRecord:
        """Find the secret record registered for this scope.

        Raises:
            ValueError: If any scope field is empty.
            SecretNotFoundError: If no record matches.
            RegistryIntegrityError: If more than one record matches.
        """
        scope = SecretScope(name, tenant_id, caller_id)
        records = list(await self._repository.find_secrets(scope))
        if not records:
            logger.info("No secret registered for %s", scope)
            raise SecretNotFoundError(scope, operation=operation)
        if len(records) > 1:
            logger.error(
                "Secret scope %s matched %d records, refusing to pick one",
                scope, len(records),
            )
            raise RegistryIntegrityError(scope, len(records), operation=operation)
        record = records[0]
        logger.debug(
            "Secret %s resolved to remote secret %s", scope, record.remote_secret_id
        )
        return record
