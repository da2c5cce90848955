"""Layered configuration and secret resolution."""

from .secure_cache import SecureCache
from .errors import (
    ConfigurationError,
    EmptySecretBundleError,
    MissingConfigurationError,
    ProviderErrorKind,
    SourceError,
)
from .store import Store
from .configurations import Configurations, DEFAULT_MISS_THRESHOLD
from .settings import ConfigSettings, build_configurations

__all__ = [
    "SecureCache",
    "ConfigurationError",
    "EmptySecretBundleError",
    "MissingConfigurationError",
    "ProviderErrorKind",
    "SourceError",
    "Store",
    "Configurations",
    "DEFAULT_MISS_THRESHOLD",
    "ConfigSettings",
    "build_configurations",
]
