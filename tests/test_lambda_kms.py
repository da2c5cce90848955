"""
Tests for the Lambda + KMS source.
"""

import asyncio
import base64
import io
import json
import pytest
from unittest.mock import MagicMock
from config.errors import ProviderErrorKind, SourceError
from schemas.invoke import InvokeResponse
from sources.lambda_kms import LambdaKMSSource


FUNCTION_ARN = "arn:aws:lambda:us-east-1:123456789012:function:vend-secrets"
KMS_ARN = "arn:aws:kms:us-east-1:123456789012:key/abcd"


def invoke_response(blob: bytes = b"ciphertext", status: int = 200, **extra) -> dict:
    body = json.dumps({"blob": base64.b64encode(blob).decode(), "encoding": "base64"}).encode()
    return {"StatusCode": status, "Payload": io.BytesIO(body), **extra}


@pytest.fixture
def lambda_client():
    client = MagicMock()
    client.invoke.side_effect = lambda **kwargs: invoke_response()
    return client


@pytest.fixture
def kms_client():
    client = MagicMock()
    client.decrypt.return_value = {"Plaintext": json.dumps({"DB_PASSWORD": "hunter2", "API_KEY": "key-1"}).encode()}
    return client


@pytest.fixture
def source(lambda_client, kms_client):
    return LambdaKMSSource(
        FUNCTION_ARN,
        KMS_ARN,
        "prod/a,prod/b",
        "DB_PASSWORD",
        "API_KEY",
        lambda_client=lambda_client,
        kms_client=kms_client,
    )


@pytest.mark.asyncio
async def test_get_loads_and_decrypts(source, lambda_client, kms_client):
    assert await source.get("DB_PASSWORD") == "hunter2"
    assert await source.get("API_KEY") == "key-1"
    assert source.initialized

    assert lambda_client.invoke.call_count == 1
    kwargs = lambda_client.invoke.call_args.kwargs
    assert kwargs["FunctionName"] == FUNCTION_ARN
    assert kwargs["InvocationType"] == "RequestResponse"
    assert json.loads(kwargs["Payload"]) == {
        "keyManagementRef": KMS_ARN,
        "storeId": "prod/a,prod/b",
        "keys": ["DB_PASSWORD", "API_KEY"],
    }
    kms_client.decrypt.assert_called_once_with(CiphertextBlob=b"ciphertext", KeyId=KMS_ARN)


@pytest.mark.asyncio
async def test_undeclared_keys_are_rejected_without_loading(source, lambda_client):
    assert await source.get("NOT_DECLARED") is None
    lambda_client.invoke.assert_not_called()


@pytest.mark.asyncio
async def test_concurrent_refreshes_share_one_invocation(source, lambda_client):
    await asyncio.gather(*(source.refresh() for _ in range(5)))
    assert lambda_client.invoke.call_count == 1

    await source.refresh()
    assert lambda_client.invoke.call_count == 2


@pytest.mark.asyncio
async def test_concurrent_first_gets_share_one_invocation(source, lambda_client):
    results = await asyncio.gather(*(source.get("API_KEY") for _ in range(4)))
    assert results == ["key-1"] * 4
    assert lambda_client.invoke.call_count == 1


@pytest.mark.asyncio
async def test_failed_invocation_reaches_every_caller_then_retries(source, lambda_client):
    lambda_client.invoke.side_effect = lambda **kwargs: invoke_response(status=500)

    results = await asyncio.gather(*(source.get("API_KEY") for _ in range(3)), return_exceptions=True)
    assert lambda_client.invoke.call_count == 1
    assert all(isinstance(r, SourceError) for r in results)
    assert results[0].kind == ProviderErrorKind.INVOKE_FAILED
    assert "prod/a,prod/b" in str(results[0])

    lambda_client.invoke.side_effect = lambda **kwargs: invoke_response()
    assert await source.get("API_KEY") == "key-1"
    assert lambda_client.invoke.call_count == 2


@pytest.mark.asyncio
async def test_function_error_is_fatal(source, lambda_client):
    lambda_client.invoke.side_effect = lambda **kwargs: invoke_response(FunctionError="Unhandled")

    with pytest.raises(SourceError) as exc_info:
        await source.refresh()
    assert exc_info.value.kind == ProviderErrorKind.INVOKE_FAILED


@pytest.mark.asyncio
async def test_kms_client_error_is_classified(source, kms_client, client_error):
    kms_client.decrypt.side_effect = client_error("InvalidCiphertextException", "Decrypt")

    with pytest.raises(SourceError) as exc_info:
        await source.get("API_KEY")
    assert exc_info.value.kind == ProviderErrorKind.DECRYPTION_FAILURE
    assert not source.initialized


@pytest.mark.asyncio
async def test_non_json_plaintext_is_fatal(source, kms_client):
    kms_client.decrypt.return_value = {"Plaintext": b"not json"}

    with pytest.raises(SourceError) as exc_info:
        await source.refresh()
    assert exc_info.value.kind == ProviderErrorKind.INVALID_PAYLOAD


def test_invoke_response_decodes_hex_and_text():
    assert InvokeResponse(blob="6869", encoding="hex").decode() == b"hi"
    assert InvokeResponse(blob="hi", encoding="utf8").decode() == b"hi"
    with pytest.raises(ValueError):
        InvokeResponse(blob="%%%", encoding="base64").decode()
