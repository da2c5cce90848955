"""
Source contract and shared loading helpers.

A Source is a pluggable backend the Store consults in priority order.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_REGION = "us-east-1"


def resolve_region(region: Optional[str] = None) -> str:
    """Pick the explicit region, then AWS_REGION, then REGION, then the default."""
    return region or os.getenv("AWS_REGION") or os.getenv("REGION") or DEFAULT_REGION


class Source(ABC):
    """
    A backend that configuration values can be resolved from.

    get() returns None for names the source does not hold; it only raises
    for configuration errors (see config.errors.SourceError).
    """

    @abstractmethod
    async def get(self, name: str) -> Optional[Any]:
        """
        Look up a configuration value.

        Args:
            name: Name of the value

        Returns:
            The value, or None if this source does not define it
        """

    @abstractmethod
    async def refresh(self) -> None:
        """Reload from the backing store, if there is one."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class SingleFlight:
    """
    Runs at most one load at a time; concurrent callers share it.

    The handle to the in-progress task is taken and released under a lock and
    cleared as soon as the task completes or fails, so every waiter sees the
    same result or exception and the next call starts a fresh load.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None

    async def run(self, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Await the in-flight load, starting one from factory if none exists.

        Args:
            factory: Zero-argument coroutine function performing the load

        Returns:
            Result of the shared load
        """
        async with self._lock:
            task = self._task
            if task is None:
                logger.debug("Starting load for %s", self.name)
                task = asyncio.ensure_future(factory())
                task.add_done_callback(self._release)
                self._task = task
            else:
                logger.debug("Joining in-flight load for %s", self.name)

        # A cancelled waiter must not cancel the load other callers are sharing
        return await asyncio.shield(task)

    def _release(self, task: asyncio.Task) -> None:
        if self._task is task:
            self._task = None
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Load for %s failed", self.name)
