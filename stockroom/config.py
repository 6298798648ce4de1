"""
Configuration management for the Stockroom server.

All configuration is done via environment variables.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Secrets (the bootstrap admin password) are never logged

How to change safely:
    - Add new settings with defaults that keep existing deployments working
    - HTTP-facing settings live in stockroom.api.config, not here
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class StorageBackend(Enum):
    """Supported collection backings."""

    JSON = "json"
    MEMORY = "memory"


@dataclass(frozen=True)
class StorageConfig:
    """Durable storage configuration.

    Attributes:
        backend: Which collection backing to use
        data_dir: Directory holding one JSON file per collection
        seed_sample_data: Seed sample components when none are stored
    """

    backend: StorageBackend = StorageBackend.JSON
    data_dir: str = "data"
    seed_sample_data: bool = True

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        backend_str = os.getenv("STOCKROOM_STORAGE_BACKEND", "json").lower()
        try:
            backend = StorageBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid STOCKROOM_STORAGE_BACKEND '{backend_str}'. Must be one of: json, memory"
            )
        return cls(
            backend=backend,
            data_dir=os.getenv("STOCKROOM_DATA_DIR", "data"),
            seed_sample_data=os.getenv("STOCKROOM_SEED_SAMPLE_DATA", "true").lower() == "true",
        )


@dataclass(frozen=True)
class BootstrapConfig:
    """Administrator account ensured at startup.

    Attributes:
        admin_id: Fixed id of the administrator (owner of the default warehouse)
        admin_username: Login name
        admin_password: Initial password, hashed before storage
    """

    admin_id: str = "admin"
    admin_username: str = "admin"
    admin_password: str = "admin"

    @classmethod
    def from_env(cls) -> BootstrapConfig:
        """Load configuration from environment variables."""
        return cls(
            admin_id=os.getenv("STOCKROOM_ADMIN_ID", "admin"),
            admin_username=os.getenv("STOCKROOM_ADMIN_USERNAME", "admin"),
            admin_password=os.getenv("STOCKROOM_ADMIN_PASSWORD", "admin"),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class ServerConfig:
    """Complete server configuration.

    Attributes:
        storage: Storage configuration
        bootstrap: Administrator bootstrap configuration
        observability: Logging configuration
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    bootstrap: BootstrapConfig = field(default_factory=BootstrapConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is missing or invalid.
        """
        config = cls(
            storage=StorageConfig.from_env(),
            bootstrap=BootstrapConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.storage.backend == StorageBackend.JSON and not self.storage.data_dir:
            raise ValueError("STOCKROOM_DATA_DIR is required when STOCKROOM_STORAGE_BACKEND=json")

        if not self.bootstrap.admin_username:
            raise ValueError("STOCKROOM_ADMIN_USERNAME must not be empty")

        if self.observability.log_format not in ("json", "text"):
            raise ValueError(f"Invalid LOG_FORMAT '{self.observability.log_format}'")

        if self.bootstrap.admin_password == "admin":
            logger.warning("Using the default administrator password; set STOCKROOM_ADMIN_PASSWORD")

        if self.storage.backend == StorageBackend.JSON and not os.path.exists(
            self.storage.data_dir
        ):
            logger.warning(
                f"Data directory does not exist: {self.storage.data_dir}. "
                "It will be created on first write."
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Server configuration loaded",
            extra={
                "storage_backend": self.storage.backend.value,
                "data_dir": self.storage.data_dir
                if self.storage.backend == StorageBackend.JSON
                else None,
                "seed_sample_data": self.storage.seed_sample_data,
                "admin_username": self.bootstrap.admin_username,
                "log_level": self.observability.log_level,
            },
        )
