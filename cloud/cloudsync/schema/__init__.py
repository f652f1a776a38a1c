"""
Schema module for cloudsync.

This module provides the declaration side of reconciliation:
- Type definitions (SchemaDefinition, FieldSpec, FieldType)
- Schema registry holding the local source of truth
- Name-set partitioning and structural equality used by the diff

Invariants:
    - Declarations are immutable once registered
    - Store-managed fields are never declared
    - Underscore-prefixed classes belong to the store and are never removed
    - All schemas must be registered before the engine sets up

How to change safely:
    - Add new field kinds to FieldType with their allowed options
    - Keep FieldSpec equality limited to store-visible attributes
"""

from .diff import DiffSet, deep_equal, get_actions
from .registry import SchemaRegistry
from .types import (
    STORE_MANAGED_FIELDS,
    SYSTEM_CLASS_FIELDS,
    FieldSpec,
    FieldType,
    NestedSchema,
    SchemaDefinition,
    field,
    is_internal_name,
    protected_fields,
)

__all__ = [
    # Types
    "SchemaDefinition",
    "FieldSpec",
    "FieldType",
    "NestedSchema",
    "field",
    "STORE_MANAGED_FIELDS",
    "SYSTEM_CLASS_FIELDS",
    "is_internal_name",
    "protected_fields",
    # Registry
    "SchemaRegistry",
    # Diff
    "DiffSet",
    "get_actions",
    "deep_equal",
]
