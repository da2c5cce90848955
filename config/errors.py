"""
Error taxonomy for configuration resolution.

Each source adapter assigns a ProviderErrorKind at the point of failure.
Transient kinds are recovered locally by the adapter; every other kind is
raised to the caller as a SourceError naming the offending store.
"""

from enum import Enum
from typing import Optional


class ProviderErrorKind(str, Enum):
    """Classified failure reported by a configuration backend."""
    DECRYPTION_FAILURE = "decryption_failure"
    INTERNAL_ERROR = "internal_error"
    INVALID_PARAMETER = "invalid_parameter"
    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"
    EMPTY_PAYLOAD = "empty_payload"
    INVALID_PAYLOAD = "invalid_payload"
    INVOKE_FAILED = "invoke_failed"
    UNKNOWN = "unknown"

    @property
    def is_transient(self) -> bool:
        """True when a later retry can be expected to succeed."""
        return self in (ProviderErrorKind.DECRYPTION_FAILURE, ProviderErrorKind.INTERNAL_ERROR)


class ConfigurationError(Exception):
    """Base class for configuration resolution errors."""


class SourceError(ConfigurationError):
    """A configuration source failed in a way that will not heal on retry."""

    def __init__(self, store_id: str, kind: ProviderErrorKind, message: Optional[str] = None):
        self.store_id = store_id
        self.kind = kind
        detail = message or kind.value.replace("_", " ")
        super().__init__(f"Configuration store '{store_id}' failed ({kind.value}): {detail}")


class EmptySecretBundleError(SourceError):
    """The secret store answered, but the bundle had no content."""

    def __init__(self, store_id: str):
        super().__init__(
            store_id,
            ProviderErrorKind.EMPTY_PAYLOAD,
            f"There is no secret string in the secret store named {store_id}.",
        )


class MissingConfigurationError(ConfigurationError):
    """A required configuration value was not found in any source."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Required configuration value '{name}' not found in any source")
