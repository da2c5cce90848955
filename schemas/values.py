"""
Tagged value schema for the encrypted configuration cache.

Every value is classified once, when it is inserted, into one of the kinds
below. The kind travels with the value through serialization so the exact
Python type can be rebuilt on read.
"""

import math
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ValueKind(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"
    DATE = "date"
    OBJECT = "object"


def to_epoch_millis(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are read as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: int) -> datetime:
    """Rebuild a UTC datetime from epoch milliseconds."""
    return EPOCH + timedelta(milliseconds=millis)


class CacheEntry(BaseModel):
    """A configuration value together with its kind."""
    kind: ValueKind
    value: Any = Field(description="JSON-compatible payload; dates are epoch milliseconds")

    @classmethod
    def of(cls, value: Any) -> Optional["CacheEntry"]:
        """
        Classify a value for storage.

        Args:
            value: Value to classify

        Returns:
            CacheEntry for storable values, None for anything that cannot be
            represented (callables, sentinels, None, infinite or NaN numbers, ...).
            Tuples are stored as objects and read back as lists.
        """
        # bool is a subclass of int, so it has to be checked first
        if isinstance(value, bool):
            return cls(kind=ValueKind.BOOLEAN, value=value)
        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                return None
            return cls(kind=ValueKind.NUMBER, value=value)
        if isinstance(value, str):
            return cls(kind=ValueKind.STRING, value=value)
        if isinstance(value, datetime):
            return cls(kind=ValueKind.DATE, value=to_epoch_millis(value))
        if isinstance(value, (dict, list, tuple)):
            return cls(kind=ValueKind.OBJECT, value=value)
        return None

    def unwrap(self) -> Any:
        """Return the value as the Python type it was stored from."""
        if self.kind == ValueKind.DATE:
            return from_epoch_millis(self.value)
        return self.value
