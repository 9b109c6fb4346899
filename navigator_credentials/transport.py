"""Remote call boundary.

The broker never signs HTTP requests itself. It hands a :class:`RemoteRequest`
(what to call, where, with which credentials) to a :class:`Transport`, which
signs and sends it and returns the raw :class:`RemoteResponse`.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Union

import orjson

from .models import ResolvedCredentials

STS = "sts"
SECRETS_MANAGER = "secretsmanager"

ASSUME_ROLE = "AssumeRole"
GET_SECRET_VALUE = "GetSecretValue"
PUT_SECRET_VALUE = "PutSecretValue"


@dataclass(frozen=True)
class RemoteRequest:
    """A single AWS API call, kept apart from the credentials that authorize it."""

    service: str
    action: str
    region: str
    credentials: ResolvedCredentials
    params: Mapping[str, Any] = field(default_factory=dict)
    endpoint: Optional[str] = None


@dataclass(frozen=True)
class RemoteResponse:
    status: int
    body: Union[bytes, str] = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Decode the body; raises ``orjson.JSONDecodeError`` if it is not JSON."""
        return orjson.loads(self.body)


class Transport(Protocol):
    async def send(self, request: RemoteRequest) -> RemoteResponse:
        """Sign and send ``request``, returning status and body."""
        ...


async def call(
    transport: Transport, request: RemoteRequest, timeout: Optional[float]
) -> RemoteResponse:
    """Send ``request`` through ``transport``, bounded by ``timeout`` seconds.

    Cancelling the awaiting task cancels the pending send.
    """
    return await asyncio.wait_for(transport.send(request), timeout)
