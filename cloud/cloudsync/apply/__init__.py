"""
Apply module for cloudsync - planning and applying schema changes.

This module handles:
- Planning class, field and index changes from a remote snapshot
- Applying them to a SchemaStore with the required ordering
- Reset of every remote class for full-environment wipes

Invariants:
    - Planning is pure; only the Reconciler writes to the store
    - Type changes are applied as delete-then-add, each committed
    - Failures are logged by the caller, never compensated

How to change safely:
    - Add new change kinds to ChangeKind and mark destructive ones
    - Verify idempotence: a second sync after a first must be a no-op
"""

from .plan import (
    ChangeKind,
    MemberActions,
    SchemaChange,
    class_actions,
    compute_plan,
    field_actions,
    index_actions,
)
from .reconciler import Reconciler, SyncResult, gather_all

__all__ = [
    "Reconciler",
    "SyncResult",
    "gather_all",
    "ChangeKind",
    "SchemaChange",
    "MemberActions",
    "compute_plan",
    "class_actions",
    "field_actions",
    "index_actions",
]
