"""
Storage factory for creating storage adapters and services.

This module provides factory functions for creating storage adapters
and services based on configuration.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional

import yaml
from pydantic import ValidationError

from ..models.capabilities import FileCapabilities
from .adapters.base import StorageAdapter
from .adapters.memory import DEFAULT_BASE_URL, DEFAULT_CAPABILITIES, InMemoryStorageAdapter
from .service import StorageService

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/storage.yaml")


class StorageConfigurationError(Exception):
    """Exception raised for storage configuration errors."""
    pass


def load_storage_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load storage configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to configuration file (default: STORAGE_CONFIG_PATH
            or config/storage.yaml)

    Returns:
        Configuration dictionary

    Raises:
        StorageConfigurationError: If configuration loading fails
    """
    if config_path is None:
        config_path = Path(os.getenv('STORAGE_CONFIG_PATH', DEFAULT_CONFIG_PATH))

    if not config_path.exists():
        raise StorageConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise StorageConfigurationError(f"YAML parsing error: {e}") from e
    except OSError as e:
        raise StorageConfigurationError(f"Configuration loading failed: {e}") from e

    if not isinstance(config, dict) or not isinstance(config.get('storage'), dict):
        raise StorageConfigurationError("Invalid configuration: missing 'storage' section")

    return _apply_environment_overrides(config)


def _apply_environment_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Environment variables follow the pattern: STORAGE_<KEY>

    Args:
        config: Base configuration dictionary

    Returns:
        Configuration with environment overrides applied
    """
    storage_type = os.getenv('STORAGE_TYPE')
    if storage_type:
        config['storage']['type'] = storage_type
        logger.info(f"Storage type overridden by environment: {storage_type}")

    memory_overrides = {
        'base_url': ('STORAGE_BASE_URL', str),
        'max_size_bytes': ('STORAGE_MAX_SIZE_BYTES', int),
        'signed_url_max_age': ('STORAGE_SIGNED_URL_MAX_AGE', int),
    }
    for key, (env_name, convert) in memory_overrides.items():
        value = os.getenv(env_name)
        if not value:
            continue
        try:
            converted = convert(value)
        except ValueError as e:
            raise StorageConfigurationError(f"Invalid value for {env_name}: {value!r}") from e
        config['storage'].setdefault('memory', {})[key] = converted
        logger.info(f"Memory adapter {key} overridden by environment: {value}")

    return config


def create_storage_adapter(config: Dict[str, Any]) -> StorageAdapter:
    """
    Create storage adapter based on configuration.

    Args:
        config: Storage configuration dictionary

    Returns:
        StorageAdapter instance

    Raises:
        StorageConfigurationError: If adapter creation fails
    """
    try:
        storage_config = config['storage']
    except KeyError as e:
        raise StorageConfigurationError(f"Missing required configuration key: {e}") from e

    adapter_type = storage_config.get('type', 'memory')

    if adapter_type == 'memory':
        return _create_memory_adapter(storage_config)
    elif adapter_type == 'supabase':
        raise StorageConfigurationError("Supabase storage adapter is not available in this package")
    else:
        raise StorageConfigurationError(f"Unknown storage adapter type: {adapter_type}")


def _create_memory_adapter(storage_config: Dict[str, Any]) -> InMemoryStorageAdapter:
    """
    Create in-memory storage adapter.

    Args:
        storage_config: Storage section of configuration

    Returns:
        InMemoryStorageAdapter instance
    """
    memory_config = storage_config.get('memory') or {}

    file_limits = {
        key: memory_config[key]
        for key in ('max_size_bytes', 'allowed_mime_types', 'signed_url_max_age')
        if key in memory_config
    }

    capabilities = DEFAULT_CAPABILITIES
    if file_limits:
        try:
            files = FileCapabilities.model_validate(
                {**DEFAULT_CAPABILITIES.files.model_dump(), **file_limits}
            )
        except ValidationError as e:
            raise StorageConfigurationError(f"Invalid memory adapter limits: {e}") from e
        capabilities = DEFAULT_CAPABILITIES.model_copy(update={'files': files})

    base_url = memory_config.get('base_url', DEFAULT_BASE_URL)

    logger.info(
        f"Creating memory storage adapter: base_url={base_url}, "
        f"max_size_bytes={capabilities.files.max_size_bytes}"
    )

    return InMemoryStorageAdapter(capabilities=capabilities, base_url=base_url)


def create_storage_service(config: Dict[str, Any], adapter: Optional[StorageAdapter] = None) -> StorageService:
    """
    Create storage service around an adapter.

    Args:
        config: Storage configuration dictionary
        adapter: Optional storage adapter (will be created if not provided)

    Returns:
        StorageService instance

    Raises:
        StorageConfigurationError: If service creation fails
    """
    if adapter is None:
        adapter = create_storage_adapter(config)

    logger.info(f"Creating storage service with provider: {adapter.provider}")

    return StorageService(adapter)


def create_default_storage_service(config_path: Optional[Path] = None) -> StorageService:
    """
    Create storage service with default configuration.

    This is the main entry point for creating a storage service with
    configuration loaded from file and environment overrides.

    Args:
        config_path: Optional path to configuration file

    Returns:
        StorageService instance ready for use

    Raises:
        StorageConfigurationError: If configuration or creation fails
    """
    try:
        config = load_storage_config(config_path)
        return create_storage_service(config)
    except StorageConfigurationError as e:
        logger.error(f"Failed to create default storage service: {e}")
        raise
