"""
Remote schema store abstraction for cloudsync.

This module provides a pluggable store interface supporting:
- Parse-compatible REST servers (production)
- In-memory (for testing)

The reconciler only talks to the SchemaStore protocol; it never
implements the transport itself.

Invariants:
    - Remote snapshots are read fresh for every reconciliation run
    - Store calls are attempted exactly once; failures propagate
    - Field and index mutations are staged in a SchemaChangeSet and
      applied by commit()

How to change safely:
    - New backends must implement the SchemaStore protocol
    - Mirror the remote store's rejections in InMemorySchemaStore
"""

from .base import (
    RemoteSchema,
    SchemaChangeSet,
    SchemaStore,
    create_schema_store,
)
from .memory import InMemorySchemaStore
from .parse import ParseSchemaStore

__all__ = [
    # Protocol and types
    "SchemaStore",
    "RemoteSchema",
    "SchemaChangeSet",
    # Factory
    "create_schema_store",
    # Implementations
    "ParseSchemaStore",
    "InMemorySchemaStore",
]
