"""Pydantic schemas for cached values and the invoke+decrypt protocol."""

from .values import CacheEntry, ValueKind
from .invoke import InvokeRequest, InvokeResponse

__all__ = [
    "CacheEntry",
    "ValueKind",
    "InvokeRequest",
    "InvokeResponse",
]
