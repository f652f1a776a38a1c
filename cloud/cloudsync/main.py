"""
cloudsync - Main entry point.

Runs one setup pass for an application module:
- Connect the schema store
- Load the module's registrations
- Reconcile (reset and/or sync, per configuration)
- Run startup hooks

Usage:
    CLOUD_MODULE=myapp.cloud CLOUD_SCHEMA_SYNC=true python -m cloud.cloudsync.main

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - Reconciliation starts only after the module's registrations load
    - A failed setup is logged, never retried; the exit code reports it
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
import sys

import json_log_formatter

from .config import ObservabilityConfig, Settings
from .engine import Cloud
from .loader import load_module
from .store import create_schema_store

logger = logging.getLogger(__name__)


def setup_logging(config: ObservabilityConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Observability configuration
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def run(settings: Settings, module_path: str) -> bool:
    """Connect the store, load the module and set up the cloud.

    Returns:
        Whether setup completed
    """
    store = create_schema_store(settings.store)
    await store.connect()
    try:
        cloud = Cloud(store)
        config = dataclasses.replace(settings.cloud, module=load_module(module_path, cloud))
        return await cloud.setup(config)
    finally:
        await store.close()


def main() -> None:
    """Main entry point."""
    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.observability)
    settings.log_config()

    module_path = os.getenv("CLOUD_MODULE")
    if not module_path:
        print("Configuration error: CLOUD_MODULE is required", file=sys.stderr)
        sys.exit(1)

    ok = asyncio.run(run(settings, module_path))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
