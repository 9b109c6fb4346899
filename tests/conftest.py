"""Pytest fixtures for navigator_credentials tests."""
import base64

import pytest

from navigator_credentials.models import SecretRecord
from navigator_credentials.storage import seal_access_key
from navigator_credentials.vault.crypto import CipherService
from tests.factories import (
    C1,
    MASTER_KEY,
    ROLE_ARN,
    T1,
    FakeRepository,
    FakeTransport,
    assume_role_response,
    json_response,
)


@pytest.fixture
def master_key():
    return MASTER_KEY


@pytest.fixture
def master_key_b64():
    return base64.b64encode(MASTER_KEY).decode("ascii")


@pytest.fixture
def cipher(master_key):
    return CipherService(master_key)


@pytest.fixture
def repository(cipher):
    """Repository with db-prod registered for (T1, C1).

    ``ak-direct`` has no role; ``ak-role`` assumes ROLE_ARN.
    """
    repo = FakeRepository()
    repo.add_access_key(seal_access_key(
        cipher, ref="ak-direct", access_key="AKIALONG",
        secret_key="long-secret", region="us-east-1",
    ))
    repo.add_access_key(seal_access_key(
        cipher, ref="ak-role", access_key="AKIALONG",
        secret_key="long-secret", region="us-east-1",
        role_arn=ROLE_ARN, role_session_name="broker",
    ))
    repo.add_secret(SecretRecord(
        name="db-prod", tenant_id=T1, caller_id=C1,
        access_key_ref="ak-direct", remote_secret_id="prod/db",
    ))
    return repo


@pytest.fixture
def transport():
    return FakeTransport({
        "AssumeRole": assume_role_response(),
        "GetSecretValue": json_response({"SecretString": "pw123"}),
        "PutSecretValue": json_response({"VersionId": "v-2"}),
    })
