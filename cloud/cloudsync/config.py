"""
Configuration management for cloudsync.

All configuration is done via environment variables - no config files.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - reset and sync default to off; destructive runs must be opted into
    - Secrets are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Deprecate settings by logging warnings but continuing to support them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class StoreBackend(Enum):
    """Supported schema store backends."""

    PARSE = "parse"
    MEMORY = "memory"


@dataclass(frozen=True)
class CloudConfig:
    """Reconciliation run configuration.

    Attributes:
        reset: Purge and delete every remote class before syncing
        sync: Diff declarations against the store and apply the result
        module: Optional handle for the loaded registrations. Awaitables
            are awaited before the reconciler starts; any other value
            (e.g. an imported module) is taken as already loaded
    """

    reset: bool = False
    sync: bool = False
    module: Any = None

    @classmethod
    def from_env(cls, module: Any = None) -> CloudConfig:
        """Load configuration from environment variables."""
        return cls(
            reset=_env_flag("CLOUD_SCHEMA_RESET"),
            sync=_env_flag("CLOUD_SCHEMA_SYNC"),
            module=module,
        )


@dataclass(frozen=True)
class StoreConfig:
    """Schema store connection configuration.

    Attributes:
        backend: Which store implementation to use
        server_url: Base URL of the store's REST API (e.g. http://localhost:1337/parse)
        app_id: Application ID sent with every request
        master_key: Master key; schema operations require it
        timeout_seconds: Per-request timeout
    """

    backend: StoreBackend = StoreBackend.PARSE
    server_url: str = "http://localhost:1337/parse"
    app_id: str = ""
    master_key: Optional[str] = None
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables."""
        backend_str = os.getenv("CLOUD_STORE_BACKEND", "parse").lower()
        try:
            backend = StoreBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid CLOUD_STORE_BACKEND '{backend_str}'. Must be one of: parse, memory"
            )
        return cls(
            backend=backend,
            server_url=os.getenv("PARSE_SERVER_URL", "http://localhost:1337/parse"),
            app_id=os.getenv("PARSE_APP_ID", ""),
            master_key=os.getenv("PARSE_MASTER_KEY"),
            timeout_seconds=float(os.getenv("PARSE_TIMEOUT_SECONDS", "30")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class Settings:
    """Complete process configuration.

    Attributes:
        cloud: Reconciliation run flags
        store: Schema store connection
        observability: Logging
    """

    cloud: CloudConfig = field(default_factory=CloudConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> Settings:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        settings = cls(
            cloud=CloudConfig.from_env(),
            store=StoreConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.store.backend == StoreBackend.PARSE:
            if not self.store.server_url:
                raise ValueError("PARSE_SERVER_URL is required when CLOUD_STORE_BACKEND=parse")
            if not self.store.app_id:
                raise ValueError("PARSE_APP_ID is required when CLOUD_STORE_BACKEND=parse")
            if (self.cloud.sync or self.cloud.reset) and not self.store.master_key:
                raise ValueError("PARSE_MASTER_KEY is required for schema sync or reset")

        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be json or text"
            )

        if self.cloud.reset:
            logger.warning(
                "CLOUD_SCHEMA_RESET is enabled: every remote class will be purged and deleted"
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Configuration loaded",
            extra={
                "store_backend": self.store.backend.value,
                "server_url": self.store.server_url,
                "app_id": self.store.app_id,
                "master_key": "***" if self.store.master_key else None,
                "schema_reset": self.cloud.reset,
                "schema_sync": self.cloud.sync,
                "log_level": self.observability.log_level,
            },
        )
