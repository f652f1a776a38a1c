"""
In-memory schema store implementation for testing.

This module provides a simple in-memory schema backend for:
- Unit and integration tests of the reconciler
- Local development without a running store
- Dry runs of declarations

Invariants:
    - All data is lost on process exit
    - Enforces the same rejections as the remote store (duplicate class,
      non-empty class deletion, unknown field deletion)
    - Every class reports the store-managed fields
    - Every applied operation is appended to ``operations`` in order

How to change safely:
    - Keep interface compatible with the SchemaStore protocol
    - Keep operation tuples stable; tests assert on them
"""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from ..errors import ErrorCode, StoreConnectionError, StoreError
from ..schema.types import SchemaDefinition
from .base import RemoteSchema, SchemaChangeSet

logger = logging.getLogger(__name__)

DEFAULT_FIELDS: Dict[str, Dict[str, Any]] = {
    "objectId": {"type": "String"},
    "createdAt": {"type": "Date"},
    "updatedAt": {"type": "Date"},
    "ACL": {"type": "ACL"},
}

Operation = Tuple[str, ...]


@dataclass
class _Failure:
    op: str
    class_name: Optional[str]
    name: Optional[str]
    error: Exception


class InMemorySchemaStore:
    """In-memory implementation of SchemaStore for testing.

    Attributes:
        operations: Applied operations as tuples, e.g.
            ("add_field", "User", "nickname") or ("purge", "Legacy")

    Thread safety:
        Uses an asyncio lock; safe to use from concurrent coroutines.

    Example:
        >>> store = InMemorySchemaStore()
        >>> await store.connect()
        >>> store.add_schema({"className": "Legacy", "fields": {}})
        >>> await store.purge("Legacy")
        >>> store.operations
        [('purge', 'Legacy')]
    """

    def __init__(self) -> None:
        self._schemas: Dict[str, RemoteSchema] = {}
        self._records: Dict[str, int] = {}
        self._failures: List[_Failure] = []
        self._connected = False
        self._lock = asyncio.Lock()
        self.operations: List[Operation] = []

    @property
    def is_connected(self) -> bool:
        """Whether connected (always true after connect())."""
        return self._connected

    async def connect(self) -> None:
        """Connect (no-op for in-memory)."""
        self._connected = True
        logger.debug("InMemorySchemaStore connected")

    async def close(self) -> None:
        """Close the store. Data is kept so tests can inspect it."""
        self._connected = False
        logger.debug("InMemorySchemaStore closed")

    # Testing helpers

    def add_schema(self, schema: Union[RemoteSchema, Dict[str, Any]], records: int = 0) -> None:
        """Seed a class without recording an operation."""
        if isinstance(schema, dict):
            schema = RemoteSchema.from_dict(schema)
        seeded = copy.deepcopy(schema)
        seeded.fields = {**copy.deepcopy(DEFAULT_FIELDS), **seeded.fields}
        self._schemas[seeded.class_name] = seeded
        self._records[seeded.class_name] = records

    def get(self, class_name: str) -> Optional[RemoteSchema]:
        """Return a copy of a class definition, or None."""
        schema = self._schemas.get(class_name)
        return copy.deepcopy(schema) if schema else None

    def record_count(self, class_name: str) -> int:
        return self._records.get(class_name, 0)

    def class_names(self) -> List[str]:
        return sorted(self._schemas)

    def fail_on(
        self,
        op: str,
        class_name: Optional[str] = None,
        name: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> None:
        """Make a future operation raise.

        Args:
            op: Operation name as it appears in ``operations``
            class_name: Only fail for this class (any class if None)
            name: Only fail for this field/index name (any if None)
            error: Exception to raise (a StoreError by default)
        """
        self._failures.append(
            _Failure(
                op=op,
                class_name=class_name,
                name=name,
                error=error
                or StoreError(f"Injected failure: {op}", class_name=class_name),
            )
        )

    def clear_operations(self) -> None:
        self.operations.clear()

    # SchemaStore protocol

    async def list_all(self) -> List[RemoteSchema]:
        self._check_connected()
        await asyncio.sleep(0)
        async with self._lock:
            self._maybe_fail("list_all", None, None)
            self.operations.append(("list_all",))
            return [copy.deepcopy(s) for s in self._schemas.values()]

    async def save(self, definition: SchemaDefinition) -> None:
        self._check_connected()
        await asyncio.sleep(0)
        class_name = definition.class_name
        async with self._lock:
            self._maybe_fail("save", class_name, None)
            if class_name in self._schemas:
                raise StoreError(
                    f"Class {class_name} already exists.",
                    code=ErrorCode.INVALID_CLASS_NAME,
                    class_name=class_name,
                )
            payload = definition.to_dict()
            self._schemas[class_name] = RemoteSchema(
                class_name=class_name,
                fields={**copy.deepcopy(DEFAULT_FIELDS), **payload["fields"]},
                indexes=payload.get("indexes", {}),
                class_level_permissions=payload.get("classLevelPermissions", {}),
            )
            self._records[class_name] = 0
            self.operations.append(("save", class_name))

    async def commit(self, changes: SchemaChangeSet) -> None:
        self._check_connected()
        await asyncio.sleep(0)
        class_name = changes.class_name
        async with self._lock:
            self._maybe_fail("commit", class_name, None)
            schema = self._require(class_name)

            # Validate everything first so a rejected update changes nothing.
            for name in changes.fields_to_delete:
                self._maybe_fail("delete_field", class_name, name)
                if name in DEFAULT_FIELDS:
                    raise StoreError(
                        f"Field {name} cannot be changed.",
                        code=ErrorCode.INVALID_SCHEMA_OPERATION,
                        class_name=class_name,
                    )
                if name not in schema.fields:
                    raise StoreError(
                        f"Field {name} does not exist, cannot delete.",
                        code=ErrorCode.INVALID_SCHEMA_OPERATION,
                        class_name=class_name,
                    )
            for name in changes.fields_to_add:
                self._maybe_fail("add_field", class_name, name)
                if name in schema.fields and name not in changes.fields_to_delete:
                    raise StoreError(
                        f"Field {name} exists, cannot update.",
                        code=ErrorCode.INVALID_SCHEMA_OPERATION,
                        class_name=class_name,
                    )
            for name in changes.indexes_to_delete:
                self._maybe_fail("delete_index", class_name, name)
                if name not in schema.indexes:
                    raise StoreError(
                        f"Index {name} does not exist, cannot delete.",
                        code=ErrorCode.INVALID_SCHEMA_OPERATION,
                        class_name=class_name,
                    )
            for name in changes.indexes_to_add:
                self._maybe_fail("add_index", class_name, name)
                if name in schema.indexes and name not in changes.indexes_to_delete:
                    raise StoreError(
                        f"Index {name} exists, cannot update.",
                        code=ErrorCode.INVALID_SCHEMA_OPERATION,
                        class_name=class_name,
                    )

            for name in changes.fields_to_delete:
                del schema.fields[name]
                self.operations.append(("delete_field", class_name, name))
            for name, spec in changes.fields_to_add.items():
                schema.fields[name] = spec.to_dict()
                self.operations.append(("add_field", class_name, name))
            for name in changes.indexes_to_delete:
                del schema.indexes[name]
                self.operations.append(("delete_index", class_name, name))
            for name, spec in changes.indexes_to_add.items():
                schema.indexes[name] = copy.deepcopy(dict(spec))
                self.operations.append(("add_index", class_name, name))
            self.operations.append(("commit", class_name))

    async def purge(self, class_name: str) -> None:
        self._check_connected()
        await asyncio.sleep(0)
        async with self._lock:
            self._maybe_fail("purge", class_name, None)
            self._require(class_name)
            self._records[class_name] = 0
            self.operations.append(("purge", class_name))

    async def delete_class(self, class_name: str) -> None:
        self._check_connected()
        await asyncio.sleep(0)
        async with self._lock:
            self._maybe_fail("delete_class", class_name, None)
            self._require(class_name)
            count = self._records.get(class_name, 0)
            if count:
                raise StoreError(
                    f"Class {class_name} is not empty, contains {count} objects, "
                    "cannot drop schema.",
                    code=ErrorCode.INVALID_SCHEMA_OPERATION,
                    class_name=class_name,
                )
            del self._schemas[class_name]
            self._records.pop(class_name, None)
            self.operations.append(("delete_class", class_name))

    def _require(self, class_name: str) -> RemoteSchema:
        schema = self._schemas.get(class_name)
        if schema is None:
            raise StoreError(
                f"Class {class_name} does not exist.",
                code=ErrorCode.INVALID_CLASS_NAME,
                class_name=class_name,
            )
        return schema

    def _check_connected(self) -> None:
        if not self._connected:
            raise StoreConnectionError("Not connected", address="memory")

    def _maybe_fail(self, op: str, class_name: Optional[str], name: Optional[str]) -> None:
        for failure in self._failures:
            if failure.op != op:
                continue
            if failure.class_name is not None and failure.class_name != class_name:
                continue
            if failure.name is not None and failure.name != name:
                continue
            raise failure.error
