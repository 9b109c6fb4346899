"""boto3-backed Transport.

boto3 signs and sends the request; this module only maps a
:class:`RemoteRequest` onto the matching client call and the client result
back onto the response bodies the broker parses.

Requires ``boto3`` (``pip install navigator-credentials[aws]``). It is
imported lazily, on the first request.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Optional

import orjson

from .conf import REQUEST_TIMEOUT
from .transport import (
    ASSUME_ROLE,
    GET_SECRET_VALUE,
    PUT_SECRET_VALUE,
    RemoteRequest,
    RemoteResponse,
)

logger = logging.getLogger("navigator.credentials")


def _unescape_secret_string(value: str) -> str:
    # boto3 JSON-encodes parameters itself
    return value.replace('\\"', '"')


def _isoformat(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _status(result: dict, default: int = 200) -> int:
    return result.get("ResponseMetadata", {}).get("HTTPStatusCode", default)


class BotoTransport:
    """Transport that performs each request with a short-lived boto3 client.

    Args:
        timeout: Connect and read timeout for the boto3 client, in seconds.
        client_factory: Callable with the ``boto3.client`` signature;
            defaults to ``boto3.client``.
    """

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        client_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        self._timeout = timeout
        self._client_factory = client_factory

    def _get_client(self, request: RemoteRequest) -> Any:
        factory = self._client_factory
        if factory is None:
            import boto3  # type: ignore[import-untyped]

            factory = self._client_factory = boto3.client
        from botocore.config import Config  # type: ignore[import-untyped]

        creds = request.credentials
        return factory(
            request.service,
            region_name=request.region,
            endpoint_url=request.endpoint,
            aws_access_key_id=creds.access_key,
            aws_secret_access_key=creds.secret_key,
            aws_session_token=creds.session_token,
            config=Config(
                connect_timeout=self._timeout,
                read_timeout=self._timeout,
                retries={"max_attempts": 1},
            ),
        )

    async def send(self, request: RemoteRequest) -> RemoteResponse:
        return await asyncio.to_thread(self._dispatch, request)

    def _dispatch(self, request: RemoteRequest) -> RemoteResponse:
        from botocore.exceptions import ClientError  # type: ignore[import-untyped]

        client = self._get_client(request)
        params = request.params
        try:
            if request.action == ASSUME_ROLE:
                result = client.assume_role(
                    RoleArn=params["RoleArn"],
                    RoleSessionName=params["RoleSessionName"],
                    DurationSeconds=params["DurationSeconds"],
                )
                creds = result.get("Credentials", {})
                body = {
                    "AssumeRoleResponse": {
                        "AssumeRoleResult": {
                            "Credentials": {
                                key: _isoformat(value) for key, value in creds.items()
                            }
                        }
                    }
                }
            elif request.action == GET_SECRET_VALUE:
                result = client.get_secret_value(SecretId=params["SecretId"])
                body = {
                    key: result[key]
                    for key in ("ARN", "Name", "VersionId", "SecretString")
                    if key in result
                }
            elif request.action == PUT_SECRET_VALUE:
                result = client.put_secret_value(
                    SecretId=params["SecretId"],
                    SecretString=_unescape_secret_string(params["SecretString"]),
                )
                body = {
                    key: result[key]
                    for key in ("ARN", "Name", "VersionId")
                    if key in result
                }
            else:
                raise ValueError(f"Unsupported action {request.action}")
        except ClientError as err:
            status = _status(err.response, default=400)
            error = err.response.get("Error", {})
            logger.warning(
                "%s %s failed with %s (%s)",
                request.service, request.action, error.get("Code"), status,
            )
            return RemoteResponse(status=status, body=orjson.dumps(error))
        return RemoteResponse(status=_status(result), body=orjson.dumps(body))
