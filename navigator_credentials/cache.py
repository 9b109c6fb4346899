"""Short-lived cache of assumed-role credentials.

Entries are keyed by access key ref and role ARN, so re-pointing a ref at
another role never serves the previous role's credentials. Only temporary
credentials (those carrying a session token) are ever stored; the long-lived
pair is not. Each key has its own lock, so concurrent misses for the same
key share a single AssumeRole call.
"""
import time
import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Tuple

from .conf import CREDENTIALS_CACHE_SKEW
from .models import AccessKeyRef, ResolvedCredentials

logger = logging.getLogger("navigator.credentials")

CacheKey = Tuple[AccessKeyRef, str]


class CredentialCache:
    """Read-through, single-flight cache for role credentials.

    Args:
        ttl: Maximum lifetime of an entry in seconds; must exceed ``skew``.
        skew: Seconds subtracted from each lifetime so entries expire
            before the credentials themselves do.
        clock: Monotonic clock, replaceable in tests.
    """

    def __init__(
        self,
        ttl: int,
        skew: int = CREDENTIALS_CACHE_SKEW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if skew < 0:
            raise ValueError("Credential cache skew cannot be negative")
        if ttl <= skew:
            raise ValueError(
                f"Credential cache ttl must exceed the {skew}s expiry skew, got {ttl}"
            )
        self._ttl = ttl
        self._skew = skew
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, ResolvedCredentials]] = {}
        self._locks: dict[CacheKey, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _lock(self, key: CacheKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _fresh(self, key: CacheKey) -> Optional[ResolvedCredentials]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, credentials = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return credentials

    def _lifetime(self, credentials: ResolvedCredentials) -> float:
        lifetime = float(self._ttl)
        if credentials.expiration is not None:
            remaining = (
                credentials.expiration - datetime.now(timezone.utc)
            ).total_seconds()
            lifetime = min(lifetime, remaining)
        return lifetime - self._skew

    async def get_or_fetch(
        self,
        ref: AccessKeyRef,
        fetch: Callable[[], Awaitable[ResolvedCredentials]],
        role_arn: str = "",
    ) -> ResolvedCredentials:
        """Return cached credentials for ``ref`` and ``role_arn`` or fetch new ones."""
        key = (ref, role_arn)
        credentials = self._fresh(key)
        if credentials is not None:
            return credentials
        async with self._lock(key):
            # another task may have filled the entry while we waited
            credentials = self._fresh(key)
            if credentials is not None:
                return credentials
            credentials = await fetch()
            if not credentials.is_temporary:
                return credentials
            lifetime = self._lifetime(credentials)
            if lifetime > 0:
                self._entries[key] = (self._clock() + lifetime, credentials)
                logger.debug(
                    "Cached role credentials for access key %s (%.0fs)", ref, lifetime
                )
            return credentials

    def invalidate(self, ref: AccessKeyRef) -> None:
        """Drop every entry held for ``ref``, whatever role it was assumed for."""
        for key in [key for key in self._entries if key[0] == ref]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()
