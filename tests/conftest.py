"""
Shared fixtures for configuration tests.
"""

import json
import pytest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError


@pytest.fixture
def client_error():
    def make(code: str, operation: str = "GetSecretValue") -> ClientError:
        return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)
    return make


@pytest.fixture
def secret_bundle():
    return {
        "aboolean": True,
        "anumber": 1,
        "astring": "foo",
        "aobject": {"foo": "bar"},
        "when": "2012-04-23T18:25:43.511Z",
    }


@pytest.fixture
def secrets_client(secret_bundle):
    client = MagicMock()
    client.get_secret_value.return_value = {"SecretString": json.dumps(secret_bundle)}
    return client
