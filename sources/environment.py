"""
Environment variable source.
"""

import logging
import os
from typing import Mapping, Optional

from sources.base import Source

logger = logging.getLogger(__name__)


class EnvironmentSource(Source):
    """Resolves values from process environment variables by exact name."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize environment source.

        Args:
            environ: Variable map to read (defaults to os.environ, read live)
        """
        self._environ = os.environ if environ is None else environ
        logger.debug("Environment source initialized")

    async def get(self, name: str) -> Optional[str]:
        value = self._environ.get(name)
        if not value:
            return None
        return value

    async def refresh(self) -> None:
        logger.debug("Refresh requested for environment source, nothing to do")
