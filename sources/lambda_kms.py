"""
Lambda + KMS source.

A secret-vending Lambda is invoked for a declared set of keys and answers
with a KMS-encrypted blob; the blob is decrypted here and its values cached.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from pydantic import ValidationError

from config.errors import ProviderErrorKind, SourceError
from config.secure_cache import SecureCache
from schemas.invoke import InvokeRequest, InvokeResponse
from sources.base import SingleFlight, Source, resolve_region

logger = logging.getLogger(__name__)


ERROR_KINDS = {
    # Lambda
    "ResourceNotFoundException": ProviderErrorKind.NOT_FOUND,
    "InvalidParameterValueException": ProviderErrorKind.INVALID_PARAMETER,
    "InvalidRequestContentException": ProviderErrorKind.INVALID_REQUEST,
    "ServiceException": ProviderErrorKind.INTERNAL_ERROR,
    # KMS
    "NotFoundException": ProviderErrorKind.NOT_FOUND,
    "InvalidCiphertextException": ProviderErrorKind.DECRYPTION_FAILURE,
    "IncorrectKeyException": ProviderErrorKind.DECRYPTION_FAILURE,
    "KMSInternalException": ProviderErrorKind.INTERNAL_ERROR,
}


def _client_config() -> Config:
    return Config(
        retries={"max_attempts": 3, "mode": "standard"},
        connect_timeout=5,
        read_timeout=5,
    )


class LambdaKMSSource(Source):
    """
    Resolves a fixed set of keys through a secret-vending Lambda and KMS.

    Only the keys declared at construction are ever requested or served.
    """

    def __init__(
        self,
        function_arn: str,
        kms_arn: str,
        store_id: str,
        *keys: str,
        region: Optional[str] = None,
        lambda_client: Any = None,
        kms_client: Any = None,
    ):
        """
        Initialize Lambda + KMS source.

        Args:
            function_arn: ARN of the Lambda that returns the encrypted secrets
            kms_arn: ARN of the KMS key used to decrypt the response
            store_id: Comma separated list of secret stores for the Lambda to read
            *keys: Every key that will be looked up from this source
            region: AWS region (defaults to AWS_REGION, REGION, then us-east-1)
            lambda_client: Preconfigured lambda client (created if not provided)
            kms_client: Preconfigured kms client (created if not provided)
        """
        self.function_arn = function_arn
        self.kms_arn = kms_arn
        self.store_id = store_id
        self.keys = frozenset(keys)
        self.region = resolve_region(region)
        self._request = InvokeRequest(key_management_ref=kms_arn, store_id=store_id, keys=list(keys))
        self._cache = SecureCache()
        self._loader = SingleFlight(f"lambda:{store_id}")
        self._initialized = False

        self._lambda = lambda_client or boto3.client("lambda", region_name=self.region, config=_client_config())
        self._kms = kms_client or boto3.client("kms", region_name=self.region, config=_client_config())

    def __repr__(self) -> str:
        return f"LambdaKMSSource(store_id={self.store_id!r}, keys={sorted(self.keys)!r})"

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def get(self, name: str) -> Optional[Any]:
        if name not in self.keys:
            logger.warning("Key %s is not declared for store %s and will not be loaded", name, self.store_id)
            return None
        if not self._initialized:
            await self.refresh()
        return self._cache.get(name)

    async def refresh(self) -> None:
        logger.debug("Refresh requested for store %s (in flight: %s)", self.store_id, self._loader.in_flight)
        await self._loader.run(self._load)

    async def _load(self) -> None:
        try:
            response = await asyncio.to_thread(
                self._lambda.invoke,
                FunctionName=self.function_arn,
                InvocationType="RequestResponse",
                Payload=self._request.to_payload(),
            )
            payload = self._read_payload(response)
            decrypted = await asyncio.to_thread(
                self._kms.decrypt,
                CiphertextBlob=payload.decode(),
                KeyId=self.kms_arn,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            kind = ERROR_KINDS.get(code, ProviderErrorKind.UNKNOWN)
            logger.error("Failed loading secrets for store %s (%s)", self.store_id, code)
            raise SourceError(self.store_id, kind, str(e)) from e
        except ValueError as e:
            raise SourceError(self.store_id, ProviderErrorKind.INVALID_PAYLOAD, str(e)) from e

        plaintext = decrypted.get("Plaintext")
        if not plaintext:
            raise SourceError(self.store_id, ProviderErrorKind.EMPTY_PAYLOAD, "KMS returned no plaintext")

        try:
            secrets = json.loads(plaintext)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SourceError(self.store_id, ProviderErrorKind.INVALID_PAYLOAD, "plaintext is not valid JSON") from e
        if not isinstance(secrets, dict):
            raise SourceError(self.store_id, ProviderErrorKind.INVALID_PAYLOAD, "plaintext is not a JSON object")

        for key, value in secrets.items():
            self._cache.set(key, value)
        self._initialized = True
        logger.info("Loaded %d secrets for store %s", len(secrets), self.store_id)

    def _read_payload(self, response: dict) -> InvokeResponse:
        status = response.get("StatusCode")
        raw = response.get("Payload")
        if status != 200 or raw is None or response.get("FunctionError"):
            raise SourceError(
                self.store_id,
                ProviderErrorKind.INVOKE_FAILED,
                f"invocation returned status {status} ({response.get('FunctionError') or 'no error'})",
            )
        body = raw.read() if hasattr(raw, "read") else raw
        try:
            return InvokeResponse.model_validate_json(body)
        except ValidationError as e:
            raise SourceError(self.store_id, ProviderErrorKind.INVALID_PAYLOAD, "unexpected invocation response") from e
