"""
Schema reconciler for cloudsync.

The Reconciler converges the remote store towards the declarations in a
SchemaRegistry. One pass runs these steps, strictly in order:
- Reset (optional): purge and delete every remote class
- Class sync (optional): create missing classes, purge and delete
  undeclared ones, then sync fields and indexes of classes on both sides

Invariants:
    - The remote snapshot is fetched once per step and never cached across runs
    - Work on different classes runs concurrently; the pass waits for all of it
    - A field or index type change is delete, commit, add, commit, in that order
    - Store failures propagate; nothing is retried or compensated
    - A failing class does not cancel siblings already in flight

How to change safely:
    - Keep planning in plan.py so dry runs and real runs agree
    - Never let two replace chains share a SchemaChangeSet
    - Two processes reconciling the same store concurrently can interleave
      destructively; run reconciliation from one coordinating process
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Iterable, List, Mapping

from ..schema.registry import SchemaRegistry
from ..schema.types import FieldSpec
from ..store.base import RemoteSchema, SchemaChangeSet, SchemaStore
from .plan import class_actions, field_actions, index_actions

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Summary of a class sync step.

    Attributes:
        created: Classes created
        deleted: Classes purged and deleted
        updated: Classes whose fields and indexes were synced
    """

    created: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)


async def gather_all(aws: Iterable[Awaitable[Any]]) -> List[Any]:
    """Run awaitables concurrently and wait for every one of them.

    Siblings are never cancelled when one fails. Once all have finished,
    the first failure (in submission order) is re-raised.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    errors = [r for r in results if isinstance(r, BaseException)]
    if errors:
        for extra in errors[1:]:
            logger.error(f"Concurrent schema operation also failed: {extra!r}")
        raise errors[0]
    return list(results)


class Reconciler:
    """Drives a reconciliation pass against a SchemaStore.

    Attributes:
        registry: Declared classes (local truth)
        store: Remote schema store (remote truth)
        reset: Whether run_migrations() wipes the store first
        sync: Whether run_migrations() applies the class diff

    Example:
        >>> reconciler = Reconciler(registry, store, sync=True)
        >>> await reconciler.run_migrations()
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        store: SchemaStore,
        reset: bool = False,
        sync: bool = False,
    ) -> None:
        self.registry = registry
        self.store = store
        self.reset = reset
        self.sync = sync

    async def run_migrations(self) -> None:
        """Run the reset step then the sync step, each if enabled."""
        if self.reset:
            await self.reset_schemas()
        if self.sync:
            await self.sync_schemas()

    async def reset_schemas(self) -> List[str]:
        """Purge and delete every remote class, declared or not.

        Returns:
            Names of the deleted classes
        """
        logger.debug("truncating database...")
        remote_schemas = await self.store.list_all()

        await gather_all(self._drop_class(schema.class_name) for schema in remote_schemas)

        deleted = [schema.class_name for schema in remote_schemas]
        logger.debug("successfully truncated.")
        if deleted:
            logger.info(f"Reset deleted {len(deleted)} classes: {','.join(deleted)}")
        return deleted

    async def sync_schemas(self) -> SyncResult:
        """Diff declared classes against the store and apply the result.

        Returns:
            Summary of created, deleted and updated classes
        """
        remote_schemas = await self.store.list_all()
        remote_by_name = {schema.class_name: schema for schema in remote_schemas}
        diff = class_actions(self.registry, remote_schemas)

        tasks: List[Awaitable[Any]] = []
        tasks.extend(self._create_class(name) for name in diff.to_add)
        tasks.extend(self._drop_class(name) for name in diff.to_remove)
        tasks.extend(self._update_class(remote_by_name[name]) for name in diff.to_update)
        await gather_all(tasks)

        if diff.to_add:
            logger.info(f"CREATED: {','.join(diff.to_add)} classes")
        if diff.to_remove:
            logger.info(f"DELETED: {','.join(diff.to_remove)} classes")

        return SyncResult(
            created=diff.to_add,
            deleted=diff.to_remove,
            updated=diff.to_update,
        )

    async def sync_fields(
        self,
        class_name: str,
        local_fields: Mapping[str, FieldSpec],
        remote_fields: Mapping[str, Mapping[str, Any]],
    ) -> None:
        """Bring a class's remote fields in line with its declaration."""
        actions = field_actions(class_name, local_fields, remote_fields)

        changes = SchemaChangeSet(class_name)
        for name in actions.to_add:
            changes.add_field(name, local_fields[name])
            logger.debug(f"CREATE: {class_name}.{name} field.")
        for name in actions.to_remove:
            changes.delete_field(name)
            logger.debug(f"DELETE: {class_name}.{name} field.")
        if not changes.is_empty:
            await self.store.commit(changes)

        await gather_all(
            self._replace_field(class_name, name, local_fields[name])
            for name in actions.to_replace
        )

    async def sync_indexes(
        self,
        class_name: str,
        local_indexes: Mapping[str, Any],
        remote_indexes: Mapping[str, Any],
    ) -> None:
        """Bring a class's remote indexes in line with its declaration."""
        actions = index_actions(local_indexes, remote_indexes)

        changes = SchemaChangeSet(class_name)
        for name in actions.to_add:
            changes.add_index(name, local_indexes[name])
            logger.debug(f"CREATE: {class_name}.{name} index.")
        for name in actions.to_remove:
            changes.delete_index(name)
            logger.debug(f"DELETE: {class_name}.{name} index.")
        if not changes.is_empty:
            await self.store.commit(changes)

        await gather_all(
            self._replace_index(class_name, name, local_indexes[name])
            for name in actions.to_replace
        )

    async def _create_class(self, class_name: str) -> None:
        await self.store.save(self.registry.get(class_name))
        logger.debug(f"CREATED: {class_name} class.")

    async def _drop_class(self, class_name: str) -> None:
        await self.store.purge(class_name)
        await self.store.delete_class(class_name)
        logger.debug(f"DELETED: {class_name} class.")

    async def _update_class(self, remote: RemoteSchema) -> None:
        local = self.registry.get(remote.class_name)
        await self.sync_fields(remote.class_name, local.fields, remote.fields)
        await self.sync_indexes(remote.class_name, local.indexes, remote.indexes)

    async def _replace_field(self, class_name: str, name: str, spec: FieldSpec) -> None:
        # The store cannot change a field's type in place.
        await self.store.commit(SchemaChangeSet(class_name).delete_field(name))
        logger.debug(f"DELETED: {class_name}.{name} field.")
        await self.store.commit(SchemaChangeSet(class_name).add_field(name, spec))
        logger.debug(f"CREATED: {class_name}.{name} field.")

    async def _replace_index(self, class_name: str, name: str, spec: Any) -> None:
        await self.store.commit(SchemaChangeSet(class_name).delete_index(name))
        logger.debug(f"DELETED: {class_name}.{name} index.")
        await self.store.commit(SchemaChangeSet(class_name).add_index(name, spec))
        logger.debug(f"CREATED: {class_name}.{name} index.")
