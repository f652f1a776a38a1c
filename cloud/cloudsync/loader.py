"""
Loading declarations from application modules and schema files.

An application module registers its declarations in one of three ways:
- a ``register(cloud)`` function (sync or async) that calls cloud.register_*
- a ``schemas`` iterable of SchemaDefinition or declarative mappings
- a ``registry`` SchemaRegistry

Schema files are JSON or YAML with a top-level ``classes`` list (a bare
list of class declarations is accepted too).
"""

from __future__ import annotations

import importlib
import inspect
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .engine import Cloud
from .schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)


async def load_module(module_path: str, cloud: Cloud) -> None:
    """Import an application module and apply its registrations to cloud.

    Raises:
        ValueError: If the module exposes none of the supported entry points
    """
    module = importlib.import_module(module_path)

    if hasattr(module, "register"):
        result = module.register(cloud)
        if inspect.isawaitable(result):
            await result
    elif hasattr(module, "schemas"):
        for schema in module.schemas:
            cloud.register_schema(schema)
    elif hasattr(module, "registry"):
        for definition in module.registry.all():
            cloud.register_schema(definition)
    else:
        raise ValueError(
            f"Module {module_path} has no 'register(cloud)', 'schemas' or 'registry'"
        )
    logger.info(f"Loaded {len(cloud.registry)} schemas from {module_path}")


def load_schema_file(path: str) -> SchemaRegistry:
    """Load declarations from a JSON or YAML file."""
    text = Path(path).read_text(encoding="utf-8")
    if path.endswith((".yaml", ".yml")):
        data: Any = yaml.safe_load(text)
    else:
        data = json.loads(text)

    if isinstance(data, list):
        data = {"classes": data}
    if not isinstance(data, dict):
        raise ValueError(f"Schema file {path} must contain a mapping or a list")
    return SchemaRegistry.from_dict(data)
