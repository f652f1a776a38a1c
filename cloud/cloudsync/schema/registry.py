"""
Schema Registry for cloudsync.

The SchemaRegistry holds the locally declared classes that the reconciler
treats as the source of truth. It provides:
- Registration of class definitions (last write for a class name wins)
- Lookup by class name
- Store-facing payloads for new classes
- Freeze mechanism so declarations cannot change once setup has started

Invariants:
    - Registry is mutable during startup, frozen when the engine sets up
    - Once frozen, no definitions can be registered
    - Iteration order is registration order
    - Fingerprint changes when any declaration changes

How to change safely:
    - Register all schemas before calling Cloud.setup()
    - Never mutate a registered definition (they are frozen dataclasses)

Example:
    >>> from cloud.cloudsync.schema import SchemaRegistry, SchemaDefinition, field
    >>> registry = SchemaRegistry()
    >>> registry.register(SchemaDefinition("User", fields={"nickname": field("String")}))
    >>> registry.get("User").fields["nickname"].type
    <FieldType.STRING: 'String'>
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from typing import Any, Iterator, Optional

from ..errors import RegistryFrozenError
from .types import SchemaDefinition

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """Registry of locally declared class definitions.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Lookups are lock-free; the registry is read-only once frozen

    Example:
        >>> registry = SchemaRegistry()
        >>> registry.register(User)
        >>> registry.freeze()
        'sha256:...'
    """

    def __init__(self) -> None:
        """Initialize an empty, mutable registry."""
        self._schemas: dict[str, SchemaDefinition] = {}
        self._frozen = False
        self._fingerprint: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        """Whether the registry is frozen."""
        return self._frozen

    @property
    def fingerprint(self) -> Optional[str]:
        """Declaration fingerprint (available after freeze)."""
        return self._fingerprint

    def register(self, definition: SchemaDefinition) -> SchemaDefinition:
        """Register a class definition.

        A second registration for the same class name replaces the first;
        definitions are never merged.

        Args:
            definition: The class to register

        Returns:
            The registered definition

        Raises:
            RegistryFrozenError: If registry is frozen
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"Cannot register schema '{definition.class_name}': registry is frozen"
                )
            if definition.class_name in self._schemas:
                logger.debug(f"Replacing schema declaration: {definition.class_name}")
            self._schemas[definition.class_name] = definition
            logger.debug(
                f"Registered schema: {definition.class_name} "
                f"({len(definition.fields)} fields, {len(definition.indexes)} indexes)"
            )
            return definition

    def get(self, class_name: str) -> Optional[SchemaDefinition]:
        """Get a definition by class name."""
        return self._schemas.get(class_name)

    def all(self) -> list[SchemaDefinition]:
        """All definitions in registration order."""
        return list(self._schemas.values())

    def class_names(self) -> list[str]:
        """All declared class names in registration order."""
        return list(self._schemas.keys())

    def __contains__(self, class_name: object) -> bool:
        return class_name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def __iter__(self) -> Iterator[SchemaDefinition]:
        return iter(self.all())

    def freeze(self) -> str:
        """Freeze the registry and compute its fingerprint.

        Returns:
            Fingerprint string in format 'sha256:<hash>'

        Raises:
            RegistryFrozenError: If already frozen
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Registry is already frozen")

            self._fingerprint = self._compute_fingerprint()
            self._frozen = True
            logger.info(
                f"Schema registry frozen with {len(self._schemas)} classes, "
                f"fingerprint={self._fingerprint}"
            )
            return self._fingerprint

    def _compute_fingerprint(self) -> str:
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), default=str)
        return f"sha256:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary with a 'classes' list sorted by name."""
        return {
            "classes": [
                self._schemas[name].to_dict() for name in sorted(self._schemas)
            ],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Convert registry to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True, default=str)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaRegistry:
        """Create registry from a declarative mapping.

        Args:
            data: Mapping with a 'classes' list of class declarations

        Returns:
            New SchemaRegistry (not frozen)
        """
        registry = cls()
        for class_data in data.get("classes", []):
            registry.register(SchemaDefinition.from_dict(class_data))
        return registry

    @classmethod
    def from_json(cls, json_str: str) -> SchemaRegistry:
        """Create registry from JSON string."""
        return cls.from_dict(json.loads(json_str))
