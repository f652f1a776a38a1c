"""
Base protocol and types for the remote schema store.

This module defines the SchemaStore protocol that all backends must
implement, along with the snapshot type the store reports and the change
set used to stage field and index mutations.

Invariants:
    - RemoteSchema snapshots are never cached across reconciliation runs
    - A SchemaChangeSet belongs to exactly one class
    - commit() applies every staged mutation of a change set in one call
    - Store calls may fail and are never retried by the core

How to change safely:
    - Protocol changes require updating all implementations
    - Keep change sets independent so concurrent chains never share state
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    List,
    Protocol,
    runtime_checkable,
)
import logging

from ..schema.types import FieldSpec, SchemaDefinition

if TYPE_CHECKING:
    from ..config import StoreConfig

logger = logging.getLogger(__name__)


@dataclass
class RemoteSchema:
    """A class definition as reported by the store.

    Attributes:
        class_name: Class identifier
        fields: Field name to the store's raw field representation
        indexes: Index name to the store's raw index descriptor
        class_level_permissions: Access-control policy
    """

    class_name: str
    fields: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    indexes: Dict[str, Any] = field(default_factory=dict)
    class_level_permissions: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RemoteSchema:
        """Create from the store's JSON representation."""
        return cls(
            class_name=data["className"],
            fields=dict(data.get("fields") or {}),
            indexes=dict(data.get("indexes") or {}),
            class_level_permissions=dict(data.get("classLevelPermissions") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the store's JSON representation."""
        return {
            "className": self.class_name,
            "fields": self.fields,
            "indexes": self.indexes,
            "classLevelPermissions": self.class_level_permissions,
        }


@dataclass
class SchemaChangeSet:
    """Staged field and index mutations for one class.

    Mutations are only applied when the change set is passed to
    SchemaStore.commit().

    Example:
        >>> changes = SchemaChangeSet("User")
        >>> changes.delete_field("age").add_index("age_1", {"age": 1})
        >>> await store.commit(changes)
    """

    class_name: str
    fields_to_add: Dict[str, FieldSpec] = field(default_factory=dict)
    fields_to_delete: List[str] = field(default_factory=list)
    indexes_to_add: Dict[str, Any] = field(default_factory=dict)
    indexes_to_delete: List[str] = field(default_factory=list)

    def add_field(self, name: str, spec: FieldSpec) -> SchemaChangeSet:
        self.fields_to_add[name] = spec
        return self

    def delete_field(self, name: str) -> SchemaChangeSet:
        self.fields_to_delete.append(name)
        return self

    def add_index(self, name: str, spec: Any) -> SchemaChangeSet:
        self.indexes_to_add[name] = spec
        return self

    def delete_index(self, name: str) -> SchemaChangeSet:
        self.indexes_to_delete.append(name)
        return self

    @property
    def is_empty(self) -> bool:
        """Whether nothing is staged."""
        return not (
            self.fields_to_add
            or self.fields_to_delete
            or self.indexes_to_add
            or self.indexes_to_delete
        )

    def to_update_payload(self) -> Dict[str, Any]:
        """Build the store's update body, with deletions as Delete markers."""
        fields: Dict[str, Any] = {name: {"__op": "Delete"} for name in self.fields_to_delete}
        fields.update({name: spec.to_dict() for name, spec in self.fields_to_add.items()})
        indexes: Dict[str, Any] = {name: {"__op": "Delete"} for name in self.indexes_to_delete}
        indexes.update({name: dict(spec) for name, spec in self.indexes_to_add.items()})

        payload: Dict[str, Any] = {"className": self.class_name}
        if fields:
            payload["fields"] = fields
        if indexes:
            payload["indexes"] = indexes
        return payload


@runtime_checkable
class SchemaStore(Protocol):
    """Protocol for remote schema store backends.

    Every method is a suspension point and may raise StoreError.
    Implementations must not cache list_all() results between calls.

    Example:
        >>> store = ParseSchemaStore(config)
        >>> await store.connect()
        >>> schemas = await store.list_all()
    """

    @abstractmethod
    async def connect(self) -> None:
        """Prepare the backend for use."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""
        ...

    @abstractmethod
    async def list_all(self) -> List[RemoteSchema]:
        """Fetch every class definition the store currently holds."""
        ...

    @abstractmethod
    async def save(self, definition: SchemaDefinition) -> None:
        """Create a class with its fields, indexes and permissions."""
        ...

    @abstractmethod
    async def commit(self, changes: SchemaChangeSet) -> None:
        """Apply every staged mutation of a change set as one update."""
        ...

    @abstractmethod
    async def purge(self, class_name: str) -> None:
        """Delete all records of a class, keeping its definition."""
        ...

    @abstractmethod
    async def delete_class(self, class_name: str) -> None:
        """Delete a class definition. The class must be empty."""
        ...


def create_schema_store(config: "StoreConfig") -> SchemaStore:
    """Factory function to create a schema store from configuration.

    Args:
        config: Store configuration

    Returns:
        Appropriate SchemaStore implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend
    from .memory import InMemorySchemaStore
    from .parse import ParseSchemaStore

    if config.backend == StoreBackend.PARSE:
        return ParseSchemaStore(config)
    elif config.backend == StoreBackend.MEMORY:
        return InMemorySchemaStore()
    else:
        raise ValueError(f"Unsupported store backend: {config.backend}")
