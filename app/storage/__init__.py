"""
Storage module for the file storage service

This module provides the provider-agnostic storage architecture with
adapters, service layer, and configuration system.
"""

from .service import StorageService
from .factory import create_default_storage_service, create_storage_service, create_storage_adapter
from .adapters.base import StorageAdapter, StorageError, ErrorCode
from .adapters.memory import InMemoryStorageAdapter

__all__ = [
    "StorageService",
    "create_default_storage_service",
    "create_storage_service",
    "create_storage_adapter",
    "StorageAdapter",
    "StorageError",
    "ErrorCode",
    "InMemoryStorageAdapter"
]
