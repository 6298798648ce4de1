"""
Unit tests for server configuration.

Tests cover:
- Defaults
- Environment variable loading
- Validation failures
"""

import pytest

from stockroom.config import ServerConfig, StorageBackend
from stockroom.store import InMemoryBacking, JsonFileBacking, create_backing


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self, monkeypatch):
        """Defaults suit local development."""
        for var in (
            "STOCKROOM_STORAGE_BACKEND",
            "STOCKROOM_DATA_DIR",
            "STOCKROOM_SEED_SAMPLE_DATA",
            "STOCKROOM_ADMIN_USERNAME",
            "LOG_FORMAT",
        ):
            monkeypatch.delenv(var, raising=False)

        config = ServerConfig.from_env()

        assert config.storage.backend == StorageBackend.JSON
        assert config.storage.data_dir == "data"
        assert config.storage.seed_sample_data is True
        assert config.bootstrap.admin_username == "admin"
        assert config.observability.log_format == "json"

    def test_from_env(self, monkeypatch, tmp_path):
        """Environment variables override defaults."""
        monkeypatch.setenv("STOCKROOM_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("STOCKROOM_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("STOCKROOM_SEED_SAMPLE_DATA", "false")
        monkeypatch.setenv("STOCKROOM_ADMIN_USERNAME", "root")
        monkeypatch.setenv("STOCKROOM_ADMIN_PASSWORD", "s3cret")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LOG_FORMAT", "text")

        config = ServerConfig.from_env()

        assert config.storage.backend == StorageBackend.MEMORY
        assert config.storage.seed_sample_data is False
        assert config.bootstrap.admin_username == "root"
        assert config.bootstrap.admin_password == "s3cret"
        assert config.observability.log_level == "DEBUG"
        assert config.observability.log_format == "text"

    def test_invalid_backend(self, monkeypatch):
        """Unknown backends are rejected."""
        monkeypatch.setenv("STOCKROOM_STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError, match="STOCKROOM_STORAGE_BACKEND"):
            ServerConfig.from_env()

    def test_invalid_log_format(self, monkeypatch):
        """Unknown log formats are rejected."""
        monkeypatch.delenv("STOCKROOM_STORAGE_BACKEND", raising=False)
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="LOG_FORMAT"):
            ServerConfig.from_env()

    def test_empty_admin_username(self, monkeypatch):
        """The administrator needs a username."""
        monkeypatch.delenv("STOCKROOM_STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        monkeypatch.setenv("STOCKROOM_ADMIN_USERNAME", "")
        with pytest.raises(ValueError, match="STOCKROOM_ADMIN_USERNAME"):
            ServerConfig.from_env()


class TestCreateBacking:
    """Tests for the backing factory."""

    def test_json_backing(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STOCKROOM_STORAGE_BACKEND", "json")
        monkeypatch.setenv("STOCKROOM_DATA_DIR", str(tmp_path))
        backing = create_backing(ServerConfig.from_env().storage)

        assert isinstance(backing, JsonFileBacking)
        assert backing.data_dir == tmp_path

    def test_memory_backing(self, monkeypatch):
        monkeypatch.setenv("STOCKROOM_STORAGE_BACKEND", "memory")
        assert isinstance(create_backing(ServerConfig.from_env().storage), InMemoryBacking)
