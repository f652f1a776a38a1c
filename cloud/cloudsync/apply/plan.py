"""
Change planning for schema reconciliation.

Computes which classes, fields and indexes a reconciliation pass would
create, delete or replace, without touching the store. The Reconciler
uses the per-class helpers to drive its writes; compute_plan() turns a
whole pass into a list of SchemaChange records for dry runs.

Invariants:
    - Store-managed and system-class default fields are never planned
    - Underscore-prefixed remote names are never planned for removal
    - A field or index present on both sides is only replaced when its
      definition differs
    - A remote field the declaration model cannot parse counts as different

Example:
    >>> changes = compute_plan(registry, await store.list_all())
    >>> destructive = [c for c in changes if c.is_destructive]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

from ..errors import InvalidFieldError
from ..schema.diff import DiffSet, deep_equal, get_actions
from ..schema.registry import SchemaRegistry
from ..schema.types import FieldSpec, protected_fields
from ..store.base import RemoteSchema

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    """Types of planned schema changes."""

    CLASS_ADDED = auto()
    FIELD_ADDED = auto()
    INDEX_ADDED = auto()

    # Destructive changes (data loss possible)
    CLASS_REMOVED = auto()
    FIELD_REMOVED = auto()
    FIELD_REPLACED = auto()
    INDEX_REMOVED = auto()
    INDEX_REPLACED = auto()

    @property
    def is_destructive(self) -> bool:
        """Whether applying this change can drop data."""
        return self in {
            ChangeKind.CLASS_REMOVED,
            ChangeKind.FIELD_REMOVED,
            ChangeKind.FIELD_REPLACED,
            ChangeKind.INDEX_REMOVED,
            ChangeKind.INDEX_REPLACED,
        }


@dataclass
class SchemaChange:
    """A single planned change.

    Attributes:
        kind: The type of change
        path: Path to the changed element (e.g., "Class:User.field:age")
        old_value: Remote definition (if applicable)
        new_value: Declared definition (if applicable)
        message: Human-readable description of the change
    """

    kind: ChangeKind
    path: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    message: str = ""

    @property
    def is_destructive(self) -> bool:
        return self.kind.is_destructive

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.name,
            "path": self.path,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "message": self.message,
            "is_destructive": self.is_destructive,
        }

    def __str__(self) -> str:
        status = "DESTRUCTIVE" if self.is_destructive else "OK"
        return f"[{status}] {self.kind.name}: {self.path} - {self.message}"


@dataclass
class MemberActions:
    """Planned field or index changes for one class.

    Attributes:
        to_add: Names declared locally and missing remotely
        to_remove: Names present remotely and not declared
        to_replace: Names on both sides whose definitions differ
    """

    to_add: List[str] = field(default_factory=list)
    to_remove: List[str] = field(default_factory=list)
    to_replace: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_add or self.to_remove or self.to_replace)


def class_actions(
    registry: SchemaRegistry,
    remote_schemas: Sequence[RemoteSchema],
) -> DiffSet:
    """Partition declared and remote class names."""
    return get_actions(
        registry.class_names(),
        [schema.class_name for schema in remote_schemas],
    )


def field_matches(local: FieldSpec, remote: Mapping[str, Any]) -> bool:
    """Whether a declared field equals the store's representation of it.

    Both sides are compared in store form with deep_equal, so a default
    of True never matches a remote default of 1.
    """
    try:
        parsed = FieldSpec.from_dict(remote)
    except InvalidFieldError:
        return False
    return deep_equal(local.to_dict(), parsed.to_dict())


def field_actions(
    class_name: str,
    local_fields: Mapping[str, FieldSpec],
    remote_fields: Mapping[str, Mapping[str, Any]],
) -> MemberActions:
    """Plan field changes for one class.

    Protected names are dropped from both sides before diffing, so they
    are never added, removed or replaced.
    """
    protected = protected_fields(class_name)
    diff = get_actions(
        [name for name in local_fields if name not in protected],
        [name for name in remote_fields if name not in protected],
    )
    return MemberActions(
        to_add=diff.to_add,
        to_remove=diff.to_remove,
        to_replace=[
            name
            for name in diff.to_update
            if not field_matches(local_fields[name], remote_fields[name])
        ],
    )


def index_actions(
    local_indexes: Mapping[str, Any],
    remote_indexes: Mapping[str, Any],
) -> MemberActions:
    """Plan index changes for one class."""
    diff = get_actions(list(local_indexes), list(remote_indexes))
    return MemberActions(
        to_add=diff.to_add,
        to_remove=diff.to_remove,
        to_replace=[
            name
            for name in diff.to_update
            if not deep_equal(local_indexes[name], remote_indexes[name])
        ],
    )


def compute_plan(
    registry: SchemaRegistry,
    remote_schemas: Sequence[RemoteSchema],
    reset: bool = False,
) -> List[SchemaChange]:
    """Plan a full reconciliation pass.

    Args:
        registry: Declared classes
        remote_schemas: Snapshot from SchemaStore.list_all()
        reset: Plan a reset first (every remote class is removed, then
            every declared class is created)

    Returns:
        List of SchemaChange in class, field, index order
    """
    changes: List[SchemaChange] = []

    if reset:
        for remote in remote_schemas:
            changes.append(SchemaChange(
                kind=ChangeKind.CLASS_REMOVED,
                path=f"Class:{remote.class_name}",
                message=f"Class '{remote.class_name}' purged and deleted by reset",
            ))
        remote_schemas = []

    remote_by_name = {schema.class_name: schema for schema in remote_schemas}
    diff = class_actions(registry, remote_schemas)

    for class_name in diff.to_add:
        changes.append(SchemaChange(
            kind=ChangeKind.CLASS_ADDED,
            path=f"Class:{class_name}",
            new_value=registry.get(class_name).to_dict(),
            message=f"Class '{class_name}' created",
        ))
    for class_name in diff.to_remove:
        changes.append(SchemaChange(
            kind=ChangeKind.CLASS_REMOVED,
            path=f"Class:{class_name}",
            message=f"Class '{class_name}' is not declared; purged and deleted",
        ))
    for class_name in diff.to_update:
        local = registry.get(class_name)
        remote = remote_by_name[class_name]
        changes.extend(_member_changes(
            class_name,
            "field",
            field_actions(class_name, local.fields, remote.fields),
            {name: spec.to_dict() for name, spec in local.fields.items()},
            remote.fields,
        ))
        changes.extend(_member_changes(
            class_name,
            "index",
            index_actions(local.indexes, remote.indexes),
            local.indexes,
            remote.indexes,
        ))

    return changes


_KINDS = {
    "field": (ChangeKind.FIELD_ADDED, ChangeKind.FIELD_REMOVED, ChangeKind.FIELD_REPLACED),
    "index": (ChangeKind.INDEX_ADDED, ChangeKind.INDEX_REMOVED, ChangeKind.INDEX_REPLACED),
}


def _member_changes(
    class_name: str,
    label: str,
    actions: MemberActions,
    local: Mapping[str, Any],
    remote: Mapping[str, Any],
) -> List[SchemaChange]:
    added, removed, replaced = _KINDS[label]
    prefix = f"Class:{class_name}.{label}"
    changes: List[SchemaChange] = []
    for name in actions.to_add:
        changes.append(SchemaChange(
            kind=added,
            path=f"{prefix}:{name}",
            new_value=local[name],
            message=f"{label.capitalize()} '{name}' added",
        ))
    for name in actions.to_remove:
        changes.append(SchemaChange(
            kind=removed,
            path=f"{prefix}:{name}",
            old_value=remote[name],
            message=f"{label.capitalize()} '{name}' is not declared; deleted",
        ))
    for name in actions.to_replace:
        changes.append(SchemaChange(
            kind=replaced,
            path=f"{prefix}:{name}",
            old_value=remote[name],
            new_value=local[name],
            message=f"{label.capitalize()} '{name}' changed; deleted and re-created",
        ))
    return changes
