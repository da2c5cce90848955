"""
Engine settings and the default Configurations factory.

Settings come from environment variables (optionally seeded from a .env file):

- CONFIG_MISS_THRESHOLD: unresolved lookups tolerated before a full refresh
- AWS_REGION / REGION: region for remote secret stores
- CONFIG_SECRET_STORE: Secrets Manager secret id to layer under the environment
"""

import os
from typing import Any, Mapping, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from config.configurations import DEFAULT_MISS_THRESHOLD, Configurations
from config.store import Store
from sources.base import DEFAULT_REGION, resolve_region


class ConfigSettings(BaseModel):
    """Settings for building a Configurations engine."""
    miss_threshold: int = Field(default=DEFAULT_MISS_THRESHOLD, ge=0)
    region: str = DEFAULT_REGION
    secret_store: Optional[str] = Field(default=None, description="Secrets Manager secret id, if any")

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "ConfigSettings":
        """
        Read settings from the environment.

        Args:
            dotenv_path: .env file to load first; existing variables win

        Returns:
            ConfigSettings instance

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)

        return cls(
            miss_threshold=os.getenv("CONFIG_MISS_THRESHOLD", DEFAULT_MISS_THRESHOLD),
            region=resolve_region(),
            secret_store=os.getenv("CONFIG_SECRET_STORE") or None,
        )


def build_configurations(
    settings: Optional[ConfigSettings] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> Configurations:
    """
    Build a Configurations engine with the standard layering.

    Resolution order: overrides, environment, secret store (when configured),
    then defaults.

    Args:
        settings: Engine settings (read from the environment if not provided)
        overrides: Values that take precedence over every other source
        defaults: Values used when no other source defines a name

    Returns:
        A new, independent Configurations instance
    """
    settings = settings or ConfigSettings.from_env()

    store = Store()
    if overrides:
        store.with_defaults(overrides)
    store.with_environment()
    if settings.secret_store:
        store.with_secret_store(settings.secret_store, settings.region)
    if defaults:
        store.with_defaults(defaults)

    return Configurations(store, miss_threshold=settings.miss_threshold)
