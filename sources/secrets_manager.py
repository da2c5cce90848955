"""
AWS Secrets Manager source.

The whole secret bundle for a store is fetched lazily on the first lookup,
cached encrypted, and only fetched again on refresh().
"""

import asyncio
import json
import logging
import re
from datetime import timezone
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from dateutil.parser import isoparse

from config.errors import EmptySecretBundleError, ProviderErrorKind, SourceError
from config.secure_cache import SecureCache
from sources.base import SingleFlight, Source, resolve_region

logger = logging.getLogger(__name__)


# Extended ISO-8601: calendar or week dates, optional time, optional Z/offset
DATE_PATTERN = re.compile(
    r"^(\d{4})(?:-?W(\d+)(?:-?(\d+)D?)?|(?:-(\d+))?-(\d+))"
    r"(?:[T ](\d+):(\d+)(?::(\d+)(?:\.(\d+))?)?)?"
    r"(?:Z(-?\d*)|[+-]\d{2}(?::?\d{2})?)?$"
)

ERROR_KINDS = {
    "DecryptionFailureException": ProviderErrorKind.DECRYPTION_FAILURE,
    "InternalServiceErrorException": ProviderErrorKind.INTERNAL_ERROR,
    "InvalidParameterException": ProviderErrorKind.INVALID_PARAMETER,
    "InvalidRequestException": ProviderErrorKind.INVALID_REQUEST,
    "ResourceNotFoundException": ProviderErrorKind.NOT_FOUND,
}


def parse_date(value: str):
    """
    Promote an ISO-8601 looking string to a datetime.

    Args:
        value: Raw string from the secret bundle

    Returns:
        Timezone-aware datetime, or None if the string is not a date
    """
    if not DATE_PATTERN.match(value):
        return None
    try:
        parsed = isoparse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SecretsManagerSource(Source):
    """
    Resolves values from a JSON secret stored in AWS Secrets Manager.

    Usage:
        source = SecretsManagerSource("prod/my-service", region="us-west-2")
        password = await source.get("DB_PASSWORD")
    """

    def __init__(self, store_id: str, region: Optional[str] = None, client: Any = None):
        """
        Initialize Secrets Manager source.

        Args:
            store_id: Secret id (name or ARN) of the bundle
            region: AWS region (defaults to AWS_REGION, REGION, then us-east-1)
            client: Preconfigured secretsmanager client (created if not provided)
        """
        self.store_id = store_id
        self.region = resolve_region(region)
        self._cache = SecureCache()
        self._loader = SingleFlight(f"secretsmanager:{store_id}")
        self._loaded_key = f"_loaded_{store_id}"

        if client is None:
            logger.debug("Creating secretsmanager client for region %s", self.region)
            client = boto3.client(
                service_name="secretsmanager",
                region_name=self.region,
                config=Config(retries={"max_attempts": 3, "mode": "standard"}),
            )
        self._client = client

    def __repr__(self) -> str:
        return f"SecretsManagerSource(store_id={self.store_id!r}, region={self.region!r})"

    async def get(self, name: str) -> Optional[Any]:
        # Lazy load until a value is requested that no earlier source had
        if not self._cache.get(self._loaded_key):
            logger.debug("Loading secret bundle %s", self.store_id)
            await self._loader.run(self.load)
        return self._cache.get(name)

    async def refresh(self) -> None:
        logger.debug("Refresh requested for secret bundle %s", self.store_id)
        await self._loader.run(self.load)

    async def load(self) -> None:
        """
        Fetch the bundle and cache every field.

        Transient provider failures are logged and swallowed, leaving the
        bundle unloaded so the next lookup or refresh tries again.

        Raises:
            SourceError: If the store is misconfigured or its content unusable
        """
        try:
            response = await asyncio.to_thread(
                self._client.get_secret_value,
                SecretId=self.store_id,
                VersionStage="AWSCURRENT",
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            kind = ERROR_KINDS.get(code, ProviderErrorKind.UNKNOWN)
            if kind.is_transient:
                logger.warning("Transient failure loading secret bundle %s (%s), will retry", self.store_id, code)
                return
            logger.error("Failed loading secret bundle %s (%s)", self.store_id, code)
            raise SourceError(self.store_id, kind, str(e)) from e

        values = self._parse(response)
        for key, value in values.items():
            if isinstance(value, str):
                value = parse_date(value) or value
            self._cache.set(key, value)

        self._cache.set(self._loaded_key, True)
        logger.debug("Loaded %d values from secret bundle %s", len(values), self.store_id)

    def _parse(self, response: dict) -> dict:
        if "SecretString" in response:
            body = response["SecretString"]
        else:
            binary = response.get("SecretBinary")
            try:
                body = binary.decode("utf-8") if isinstance(binary, (bytes, bytearray)) else binary
            except UnicodeDecodeError as e:
                raise SourceError(self.store_id, ProviderErrorKind.INVALID_PAYLOAD, "secret binary is not UTF-8") from e

        if not body:
            logger.error("There is no secret string in the secret store %s", self.store_id)
            raise EmptySecretBundleError(self.store_id)

        try:
            values = json.loads(body)
        except json.JSONDecodeError as e:
            raise SourceError(self.store_id, ProviderErrorKind.INVALID_PAYLOAD, "secret is not valid JSON") from e

        if not isinstance(values, dict):
            raise SourceError(self.store_id, ProviderErrorKind.INVALID_PAYLOAD, "secret is not a JSON object")
        return values
