"""
Unit tests for storage configuration loading and factory functions.
"""

import pytest

from app.storage.adapters.memory import DEFAULT_CAPABILITIES, InMemoryStorageAdapter
from app.storage.factory import (
    StorageConfigurationError,
    create_default_storage_service,
    create_storage_adapter,
    create_storage_service,
    load_storage_config,
)
from app.storage.service import StorageService

ENV_VARS = [
    "STORAGE_TYPE",
    "STORAGE_BASE_URL",
    "STORAGE_MAX_SIZE_BYTES",
    "STORAGE_SIGNED_URL_MAX_AGE",
    "STORAGE_CONFIG_PATH",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "storage.yaml"
    path.write_text(
        "storage:\n"
        "  type: memory\n"
        "  memory:\n"
        "    base_url: https://files.example.com\n"
        "    max_size_bytes: 2048\n"
        "    allowed_mime_types: [image/png, image/jpeg]\n"
        "    signed_url_max_age: 600\n",
        encoding="utf-8"
    )
    return path


class TestLoadStorageConfig:
    """Test cases for YAML configuration loading."""

    def test_load_config(self, config_file):
        """Test loading a valid configuration file."""
        config = load_storage_config(config_file)

        assert config["storage"]["type"] == "memory"
        assert config["storage"]["memory"]["max_size_bytes"] == 2048

    def test_missing_file(self, tmp_path):
        """Test a missing configuration file."""
        with pytest.raises(StorageConfigurationError, match="not found"):
            load_storage_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML."""
        path = tmp_path / "broken.yaml"
        path.write_text("storage: [unclosed\n", encoding="utf-8")

        with pytest.raises(StorageConfigurationError, match="YAML"):
            load_storage_config(path)

    def test_missing_storage_section(self, tmp_path):
        """Test configuration without a storage section."""
        path = tmp_path / "empty.yaml"
        path.write_text("other: true\n", encoding="utf-8")

        with pytest.raises(StorageConfigurationError, match="storage"):
            load_storage_config(path)

    def test_environment_overrides(self, config_file, monkeypatch):
        """Test environment variables override file values."""
        monkeypatch.setenv("STORAGE_BASE_URL", "https://override.example.com")
        monkeypatch.setenv("STORAGE_MAX_SIZE_BYTES", "4096")
        monkeypatch.setenv("STORAGE_SIGNED_URL_MAX_AGE", "60")

        memory = load_storage_config(config_file)["storage"]["memory"]

        assert memory["base_url"] == "https://override.example.com"
        assert memory["max_size_bytes"] == 4096
        assert memory["signed_url_max_age"] == 60

    def test_invalid_environment_override(self, config_file, monkeypatch):
        """Test non-numeric overrides for numeric settings."""
        monkeypatch.setenv("STORAGE_MAX_SIZE_BYTES", "lots")

        with pytest.raises(StorageConfigurationError, match="STORAGE_MAX_SIZE_BYTES"):
            load_storage_config(config_file)

    def test_config_path_from_environment(self, config_file, monkeypatch):
        """Test the default path can be set through the environment."""
        monkeypatch.setenv("STORAGE_CONFIG_PATH", str(config_file))

        assert load_storage_config()["storage"]["memory"]["max_size_bytes"] == 2048


class TestStorageFactory:
    """Test cases for adapter and service creation."""

    def test_create_memory_adapter(self, config_file):
        """Test the memory adapter picks up configured limits."""
        adapter = create_storage_adapter(load_storage_config(config_file))

        assert isinstance(adapter, InMemoryStorageAdapter)
        assert adapter.base_url == "https://files.example.com"
        caps = adapter.get_capabilities()
        assert caps.files.max_size_bytes == 2048
        assert caps.files.allowed_mime_types == ["image/png", "image/jpeg"]
        assert caps.files.signed_url_max_age == 600
        assert caps.buckets == DEFAULT_CAPABILITIES.buckets

    def test_memory_adapter_defaults(self):
        """Test a bare memory configuration uses the default capabilities."""
        adapter = create_storage_adapter({"storage": {"type": "memory"}})

        assert adapter.get_capabilities() == DEFAULT_CAPABILITIES

    def test_invalid_limits(self):
        """Test inconsistent limits are reported as configuration errors."""
        config = {"storage": {"type": "memory", "memory": {"max_size_bytes": -5}}}

        with pytest.raises(StorageConfigurationError, match="limits"):
            create_storage_adapter(config)

    def test_unknown_adapter_type(self):
        """Test unknown adapter types."""
        with pytest.raises(StorageConfigurationError, match="Unknown"):
            create_storage_adapter({"storage": {"type": "floppy"}})

    def test_supabase_adapter_unavailable(self):
        """Test the remote adapter type is recognized but unavailable."""
        with pytest.raises(StorageConfigurationError, match="Supabase"):
            create_storage_adapter({"storage": {"type": "supabase"}})

    def test_missing_storage_key(self):
        """Test configuration dictionaries without a storage section."""
        with pytest.raises(StorageConfigurationError):
            create_storage_adapter({})

    def test_create_storage_service(self):
        """Test creating a service from configuration."""
        service = create_storage_service({"storage": {"type": "memory"}})

        assert isinstance(service, StorageService)
        assert isinstance(service.adapter, InMemoryStorageAdapter)
        assert service.provider == "memory"

    def test_create_storage_service_with_adapter(self):
        """Test an explicit adapter is used as given."""
        adapter = InMemoryStorageAdapter()

        service = create_storage_service({}, adapter=adapter)

        assert service.adapter is adapter

    def test_create_default_storage_service(self, config_file):
        """Test the main entry point."""
        service = create_default_storage_service(config_file)

        assert service.get_capabilities().files.max_size_bytes == 2048

    def test_create_default_storage_service_failure(self, tmp_path):
        """Test configuration failures propagate."""
        with pytest.raises(StorageConfigurationError):
            create_default_storage_service(tmp_path / "missing.yaml")
