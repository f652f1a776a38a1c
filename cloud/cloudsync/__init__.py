"""
cloudsync - Declarative schema reconciliation for Parse-compatible stores.

Applications declare their classes, fields, indexes and permissions in
code; at startup the engine compares those declarations with the live
schema on the store and applies the create/update/delete operations
needed to converge:

    declarations ──▶ SchemaRegistry ─┐
                                      ├──▶ Reconciler ──▶ SchemaStore ──▶ store
    store schema ◀── list_all() ─────┘

Invariants:
    - Declarations are the source of truth for declared classes
    - Store-managed fields and underscore-prefixed classes are never removed
    - Field and index type changes are applied as delete then add
    - Failures are logged; nothing is rolled back or retried

How to change safely:
    - Run `cloudsync-schema plan` before enabling sync in a new environment
    - Only enable reset in disposable environments

Example:
    >>> from cloud.cloudsync import Cloud, CloudConfig, SchemaDefinition, field
    >>> cloud = Cloud(store)
    >>> cloud.register_schema(SchemaDefinition("User", fields={"nickname": field("String")}))
    >>> await cloud.setup(CloudConfig(sync=True))
"""

__version__ = "1.0.0"

from .config import CloudConfig, Settings, StoreConfig
from .engine import Cloud, FunctionRequest, ResolverInfo, TriggerEvent, TriggerRequest
from .errors import CloudError, ErrorCode, StoreError
from .schema import FieldSpec, FieldType, SchemaDefinition, SchemaRegistry, field

__all__ = [
    "__version__",
    # Engine
    "Cloud",
    "CloudConfig",
    "Settings",
    "StoreConfig",
    "TriggerEvent",
    "FunctionRequest",
    "TriggerRequest",
    "ResolverInfo",
    # Schema
    "SchemaDefinition",
    "FieldSpec",
    "FieldType",
    "SchemaRegistry",
    "field",
    # Errors
    "CloudError",
    "ErrorCode",
    "StoreError",
]
