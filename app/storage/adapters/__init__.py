"""
Storage adapters package.

This package contains the adapter contract and the adapter
implementations for different storage backends.
"""

from .base import StorageAdapter, StorageError, ErrorCode
from .memory import InMemoryStorageAdapter

__all__ = [
    "StorageAdapter",
    "StorageError",
    "ErrorCode",
    "InMemoryStorageAdapter",
]
