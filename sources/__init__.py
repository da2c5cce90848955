"""Configuration sources that the Store resolves values from."""

from .base import Source, SingleFlight
from .environment import EnvironmentSource
from .static import StaticSource
from .secrets_manager import SecretsManagerSource
from .lambda_kms import LambdaKMSSource

__all__ = [
    "Source",
    "SingleFlight",
    "EnvironmentSource",
    "StaticSource",
    "SecretsManagerSource",
    "LambdaKMSSource",
]
