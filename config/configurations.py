"""
Configuration resolution engine.

Values are resolved by walking the Store's sources in priority order. Lookups
that no source can answer are counted, and once too many pile up every
source is refreshed so stale remote caches recover on their own.
"""

import asyncio
import json
import logging
import math
from datetime import datetime
from typing import Any, Optional, TypeVar

from config.errors import MissingConfigurationError
from config.store import Store
from schemas.values import to_epoch_millis

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MISS_THRESHOLD = 5


def _is_defined(value: Any) -> bool:
    return value is not None and value != ""


class Configurations:
    """
    Resolves configuration values from an ordered Store of sources.

    Usage:
        configurations = Configurations(Store().with_defaults({"DEBUG": "false"}).with_environment())
        debug = await configurations.as_boolean("DEBUG")
    """

    def __init__(self, store: Optional[Store] = None, miss_threshold: int = DEFAULT_MISS_THRESHOLD):
        """
        Initialize configurations engine.

        Args:
            store: Sources to resolve from (an empty Store if not provided)
            miss_threshold: Unresolved lookups tolerated before all sources refresh
        """
        if miss_threshold < 0:
            raise ValueError("miss_threshold must be zero or greater")
        self.store = store if store is not None else Store()
        self.miss_threshold = miss_threshold
        self._misses = 0

    @property
    def misses(self) -> int:
        """Unresolved lookups counted since the last refresh."""
        return self._misses

    async def get(self, name: str, default: Optional[T] = None) -> Any:
        """
        Resolve a configuration value.

        A lookup without a default that no source can answer counts as a miss.
        When misses exceed the threshold, every source is refreshed and the
        lookup is attempted once more.

        Args:
            name: Name of the configuration value
            default: Value returned when no source defines the name

        Returns:
            The first value found in priority order, or default
        """
        value = await self._resolve(name)
        if _is_defined(value):
            return value

        if default is not None:
            return default

        self._misses += 1
        if self._misses > self.miss_threshold:
            logger.info("%d unresolved lookups, refreshing all sources", self._misses)
            self._misses = 0
            await self.refresh()
            value = await self._resolve(name)
            if _is_defined(value):
                return value
        return default

    async def require(self, name: str) -> Any:
        """
        Resolve a configuration value that must exist.

        Raises:
            MissingConfigurationError: If no source defines the name
        """
        value = await self.get(name)
        if value is None:
            raise MissingConfigurationError(name)
        return value

    async def refresh(self) -> None:
        """Refresh every source concurrently; one failing does not stop the others."""
        sources = self.store.sources
        results = await asyncio.gather(*(source.refresh() for source in sources), return_exceptions=True)
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.error("Refresh failed for %r: %s", source, result)

    async def _resolve(self, name: str) -> Any:
        for source in self.store:
            value = await source.get(name)
            if _is_defined(value):
                return value
        return None

    # Type coercion helpers

    async def as_boolean(self, name: str, default: Optional[bool] = None) -> bool:
        """Resolve a value as a boolean; only "true" (any case) or JSON true count."""
        value = await self.get(name, default)
        if value is None:
            return False
        if isinstance(value, str):
            return value.lower() == "true"
        try:
            return json.loads(json.dumps(value)) == True  # noqa: E712
        except (TypeError, ValueError):
            return False

    async def as_number(self, name: str, default: Optional[float] = None) -> float:
        """Resolve a value as a number; non-numeric values give nan instead of raising."""
        value = await self.get(name, default)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, datetime):
            return to_epoch_millis(value)
        if isinstance(value, str) and not value.strip():
            return 0.0
        try:
            return float(value)
        except (TypeError, ValueError):
            return math.nan

    async def as_string(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Resolve a value as a string."""
        value = await self.get(name, default)
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)

    async def as_object(self, name: str, default: Optional[Any] = None) -> Any:
        """Resolve a value as a parsed object; strings are decoded as JSON."""
        value = await self.get(name, default)
        if isinstance(value, str):
            return json.loads(value)
        return value
