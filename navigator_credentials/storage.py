"""
Record storage: asyncpg-compatible repository for secret and access key records.

Also holds the encrypt-on-write hook: plaintext access keys are sealed with
the CipherService before they ever reach a record, so stored records only
contain ciphertext/IV pairs.

Security Note:
    Never log plaintext or ciphertext values. Only log refs and scopes.
"""
import logging
from typing import Any, Optional, Sequence

from .models import (
    AccessKeyRecord,
    AccessKeyRef,
    AssumableCredential,
    SecretRecord,
    SecretScope,
    make_access_key_record,
)
from .vault.crypto import CipherService, CipherText

logger = logging.getLogger("navigator.credentials")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_CREATE_SCHEMA = """
CREATE SCHEMA IF NOT EXISTS credentials;

CREATE TABLE IF NOT EXISTS credentials.aws_access_keys (
    id TEXT PRIMARY KEY,
    access_key TEXT NOT NULL,
    access_key_iv BYTEA NOT NULL,
    secret_key TEXT NOT NULL,
    secret_key_iv BYTEA NOT NULL,
    region TEXT NOT NULL,
    role_arn TEXT NOT NULL DEFAULT '',
    role_session_name TEXT NOT NULL DEFAULT '',
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS credentials.aws_secrets (
    name TEXT NOT NULL,
    tenant_id TEXT NOT NULL,
    caller_id TEXT NOT NULL,
    access_key_id TEXT NOT NULL REFERENCES credentials.aws_access_keys (id),
    secret_id TEXT NOT NULL,
    endpoint_url TEXT,
    UNIQUE (name, tenant_id, caller_id)
);
"""

_SELECT_SECRETS = """
SELECT name, tenant_id, caller_id, access_key_id, secret_id, endpoint_url
FROM credentials.aws_secrets
WHERE name = $1 AND tenant_id = $2 AND caller_id = $3
"""

_SELECT_ACCESS_KEY = """
SELECT id, access_key, access_key_iv, secret_key, secret_key_iv,
       region, role_arn, role_session_name
FROM credentials.aws_access_keys
WHERE id = $1
"""

_UPSERT_ACCESS_KEY = """
INSERT INTO credentials.aws_access_keys
    (id, access_key, access_key_iv, secret_key, secret_key_iv,
     region, role_arn, role_session_name)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
ON CONFLICT (id)
DO UPDATE SET access_key = EXCLUDED.access_key,
             access_key_iv = EXCLUDED.access_key_iv,
             secret_key = EXCLUDED.secret_key,
             secret_key_iv = EXCLUDED.secret_key_iv,
             region = EXCLUDED.region,
             role_arn = EXCLUDED.role_arn,
             role_session_name = EXCLUDED.role_session_name,
             updated_at = NOW()
"""


def seal_access_key(
    cipher: CipherService,
    *,
    ref: AccessKeyRef,
    access_key: str,
    secret_key: str,
    region: str,
    role_arn: Optional[str] = None,
    role_session_name: Optional[str] = None,
) -> AccessKeyRecord:
    """Encrypt plaintext key material into a storable access key record.

    This is the only producer of encrypted access key fields. Each key gets
    its own IV.

    Raises:
        ValueError: If either key or the region is empty.
        EncryptionError: If the master key is unavailable.
    """
    if not access_key or not secret_key:
        raise ValueError("Access key and secret key are required")
    if not region:
        raise ValueError("Region is required")
    return make_access_key_record(
        ref=ref,
        access_key=cipher.encrypt(access_key),
        secret_key=cipher.encrypt(secret_key),
        region=region,
        role_arn=role_arn,
        role_session_name=role_session_name,
    )


class PgRecordRepository:
    """RecordRepository over an asyncpg-compatible connection pool.

    Args:
        db_pool: Pool exposing ``acquire()`` as an async context manager
            whose connections provide ``fetch``, ``fetchrow`` and ``execute``.
    """

    def __init__(self, db_pool: Any) -> None:
        self._db = db_pool

    async def create_schema(self) -> None:
        """Create the credentials schema and tables if they do not exist."""
        async with self._db.acquire() as conn:
            await conn.execute(_CREATE_SCHEMA)

    async def find_secrets(self, scope: SecretScope) -> Sequence[SecretRecord]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(
                _SELECT_SECRETS, scope.name, scope.tenant_id, scope.caller_id,
            )
        return [
            SecretRecord(
                name=row["name"],
                tenant_id=row["tenant_id"],
                caller_id=row["caller_id"],
                access_key_ref=row["access_key_id"],
                remote_secret_id=row["secret_id"],
                endpoint_url=row["endpoint_url"] or None,
            )
            for row in rows
        ]

    async def load_access_key(self, ref: AccessKeyRef) -> Optional[AccessKeyRecord]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_ACCESS_KEY, ref)
        if row is None:
            return None
        return make_access_key_record(
            ref=row["id"],
            access_key=CipherText(row["access_key"], bytes(row["access_key_iv"])),
            secret_key=CipherText(row["secret_key"], bytes(row["secret_key_iv"])),
            region=row["region"],
            role_arn=row["role_arn"],
            role_session_name=row["role_session_name"],
        )

    async def save_access_key(self, record: AccessKeyRecord) -> None:
        """Persist a sealed access key record, replacing any previous one."""
        if isinstance(record, AssumableCredential):
            role_arn, session_name = record.role_arn, record.role_session_name
        else:
            role_arn, session_name = "", ""
        async with self._db.acquire() as conn:
            await conn.execute(
                _UPSERT_ACCESS_KEY,
                record.ref,
                record.access_key.ciphertext,
                record.access_key.iv,
                record.secret_key.ciphertext,
                record.secret_key.iv,
                record.region,
                role_arn,
                session_name,
            )
        logger.debug("Saved access key record %s", record.ref)

    async def store_access_key(
        self,
        cipher: CipherService,
        *,
        ref: AccessKeyRef,
        access_key: str,
        secret_key: str,
        region: str,
        role_arn: Optional[str] = None,
        role_session_name: Optional[str] = None,
    ) -> AccessKeyRecord:
        """Seal plaintext keys and persist the resulting record."""
        record = seal_access_key(
            cipher,
            ref=ref,
            access_key=access_key,
            secret_key=secret_key,
            region=region,
            role_arn=role_arn,
            role_session_name=role_session_name,
        )
        await self.save_access_key(record)
        return record
