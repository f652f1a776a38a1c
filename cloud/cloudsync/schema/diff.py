"""
Set partitioning and structural equality used by the reconciler.

Pure functions with no I/O - fully testable. get_actions() is applied at
three granularities (class names, field names, index names); deep_equal()
decides whether a name present on both sides actually differs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

from .types import is_internal_name


@dataclass
class DiffSet:
    """Partition of local and remote names.

    Attributes:
        to_add: Present locally, absent remotely
        to_remove: Present remotely, absent locally (protected names excluded)
        to_update: Present on both sides
    """

    to_add: list[str] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)
    to_update: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Whether nothing needs to be added or removed."""
        return not self.to_add and not self.to_remove


def get_actions(
    local: Iterable[str],
    remote: Iterable[str],
    protected: Callable[[str], bool] = is_internal_name,
) -> DiffSet:
    """Partition two name sets into add/remove/update lists.

    Output order follows the first appearance of each name in
    ``local`` followed by ``remote``.

    Args:
        local: Names declared locally
        remote: Names reported by the store
        protected: Predicate for remote-only names that must never be
            removed; defaults to the store's underscore convention

    Returns:
        DiffSet with every input name in exactly one list, except
        protected remote-only names which appear in none

    Example:
        >>> get_actions(["A", "B"], ["B", "_Role"])
        DiffSet(to_add=['A'], to_remove=[], to_update=['B'])
    """
    local_list = list(local)
    remote_list = list(remote)
    local_set = set(local_list)
    remote_set = set(remote_list)

    result = DiffSet()
    for name in dict.fromkeys(local_list + remote_list):
        in_local = name in local_set
        in_remote = name in remote_set
        if in_local and in_remote:
            result.to_update.append(name)
        elif in_local:
            result.to_add.append(name)
        elif not protected(name):
            result.to_remove.append(name)
    return result


def _is_container(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple))


def deep_equal(a: Any, b: Any) -> bool:
    """Recursive value equality for field and index descriptors.

    Booleans never equal numbers, and numbers never equal strings, so
    ``deep_equal(1, True)`` and ``deep_equal(1, "1")`` are both False.
    Inputs must be acyclic.

    Args:
        a: First value
        b: Second value

    Returns:
        True if both values have the same structure and contents
    """
    if a is b:
        return True

    if not _is_container(a) and not _is_container(b):
        if isinstance(a, bool) or isinstance(b, bool):
            return isinstance(a, bool) and isinstance(b, bool) and a == b
        return a == b

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if len(a) != len(b):
            return False
        for key in a:
            if key not in b:
                return False
            if not deep_equal(a[key], b[key]):
                return False
        return True

    if _is_sequence(a) and _is_sequence(b):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))

    return False


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))
