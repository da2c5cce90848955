"""
Static in-memory source, seeded once from a caller-supplied map.
"""

import logging
from typing import Any, Mapping, Optional

from config.secure_cache import SecureCache
from sources.base import Source

logger = logging.getLogger(__name__)


class StaticSource(Source):
    """Holds a fixed set of values in its own encrypted cache."""

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        """
        Initialize static source.

        Args:
            values: Values to serve; copied at construction, never updated
        """
        self._cache = SecureCache()
        for key, value in (values or {}).items():
            self._cache.set(key, value)
        logger.debug("Static source initialized with %d values", len(self._cache))

    async def get(self, name: str) -> Optional[Any]:
        return self._cache.get(name)

    async def refresh(self) -> None:
        logger.debug("Refresh requested for static source, nothing to do")
