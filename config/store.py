"""
Ordered registry of configuration sources.

Registration order is priority order: the first source registered is the
first one consulted, and the first to define a value wins.
"""

import logging
from typing import Any, Iterator, Mapping, Optional

from sources.base import Source

logger = logging.getLogger(__name__)


class Store:
    """
    Builder for the list of sources a Configurations engine consults.

    Usage:
        store = (
            Store()
            .with_defaults({"LOG_LEVEL": "info"})
            .with_environment()
            .with_secret_store("prod/my-service")
        )
    """

    def __init__(self):
        self._sources: list[Source] = []

    @property
    def sources(self) -> tuple[Source, ...]:
        """Registered sources, highest priority first."""
        return tuple(self._sources)

    def __iter__(self) -> Iterator[Source]:
        return iter(tuple(self._sources))

    def __len__(self) -> int:
        return len(self._sources)

    def with_environment(self) -> "Store":
        """Resolve values from environment variables."""
        from sources.environment import EnvironmentSource

        return self.with_custom(EnvironmentSource())

    def with_defaults(self, values: Mapping[str, Any]) -> "Store":
        """
        Resolve values from a fixed map.

        Args:
            values: Values to serve (copied at registration)
        """
        from sources.static import StaticSource

        logger.debug("Registering static source with keys: %s", list(values))
        return self.with_custom(StaticSource(values))

    def with_secret_store(self, store_id: str, region: Optional[str] = None) -> "Store":
        """
        Resolve values from an AWS Secrets Manager JSON secret.

        Args:
            store_id: Secret id (name or ARN) to load
            region: AWS region, defaults to AWS_REGION, REGION, then us-east-1
        """
        from sources.secrets_manager import SecretsManagerSource

        return self.with_custom(SecretsManagerSource(store_id, region))

    def with_invoke_decrypt(
        self,
        function_arn: str,
        kms_arn: str,
        store_id: str,
        *keys: str,
        region: Optional[str] = None,
    ) -> "Store":
        """
        Resolve a declared set of keys through a secret-vending Lambda and KMS.

        Args:
            function_arn: ARN of the Lambda returning the encrypted secrets
            kms_arn: ARN of the KMS key that decrypts them
            store_id: Secret store(s) the Lambda should read
            *keys: Every key that will be looked up from this source
            region: AWS region, defaults to AWS_REGION, REGION, then us-east-1
        """
        from sources.lambda_kms import LambdaKMSSource

        return self.with_custom(LambdaKMSSource(function_arn, kms_arn, store_id, *keys, region=region))

    def with_custom(self, source: Source) -> "Store":
        """
        Register any Source implementation.

        Args:
            source: Source to consult after those already registered

        Raises:
            TypeError: If source does not implement Source
        """
        if not isinstance(source, Source):
            raise TypeError(f"Expected a Source, got {type(source).__name__}")
        logger.debug("Registering %r at position %d", source, len(self._sources))
        self._sources.append(source)
        return self

    def remove(self, source: Source) -> "Store":
        """Unregister a source; the remaining sources keep their order."""
        self._sources.remove(source)
        return self
