# mypy: ignore-errors
"""
Schema CLI tool for cloudsync.

This tool manages declared schemas against a live store:
- export: Dump declarations to JSON
- plan: Show what a sync would change, without writing
- sync: Run one sync pass
- reset: Purge and delete every remote class

Usage:
    cloudsync-schema export --module myapp.cloud > schema.json
    cloudsync-schema plan --file schema.yaml
    cloudsync-schema sync --module myapp.cloud
    cloudsync-schema reset --yes

Store connection settings come from the environment (see config.py).

Invariants:
    - plan never writes to the store
    - plan exits non-zero when any planned change is destructive
    - reset refuses to run without --yes
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from ..apply import Reconciler, SchemaChange, SyncResult, compute_plan
from ..config import StoreConfig
from ..engine import Cloud
from ..loader import load_module, load_schema_file
from ..schema import SchemaRegistry
from ..store import SchemaStore, create_schema_store

logger = logging.getLogger(__name__)


class SchemaCLI:
    """CLI tool for schema management.

    Example:
        >>> cli = SchemaCLI(store)
        >>> print(cli.export(registry))
        >>> changes = await cli.plan(registry)
    """

    def __init__(self, store: SchemaStore) -> None:
        self.store = store

    def export(self, registry: SchemaRegistry) -> str:
        """Export declarations to JSON."""
        output = {
            "version": 1,
            "fingerprint": registry.fingerprint or "unfrozen",
            "schema": registry.to_dict(),
        }
        return json.dumps(output, indent=2, sort_keys=True, default=str)

    async def plan(self, registry: SchemaRegistry, reset: bool = False) -> list[SchemaChange]:
        """Compute the changes a pass would apply."""
        return compute_plan(registry, await self.store.list_all(), reset=reset)

    async def sync(self, registry: SchemaRegistry) -> SyncResult:
        """Run one sync pass."""
        return await Reconciler(registry, self.store, sync=True).sync_schemas()

    async def reset(self) -> list[str]:
        """Purge and delete every remote class."""
        return await Reconciler(SchemaRegistry(), self.store, reset=True).reset_schemas()


def format_changes(changes: list[SchemaChange], output_format: str = "text") -> str:
    """Render planned changes for the terminal or for CI."""
    if output_format == "json":
        return json.dumps([c.to_dict() for c in changes], indent=2, default=str)
    if not changes:
        return "No changes detected"
    lines = [f"Found {len(changes)} change(s):"]
    for change in changes:
        status = "DESTRUCTIVE" if change.is_destructive else "OK"
        lines.append(f"  [{status}] {change.kind.name}: {change.path}")
        lines.append(f"          {change.message}")
    return "\n".join(lines)


async def _load_registry(
    store: SchemaStore,
    module_path: Optional[str] = None,
    file_path: Optional[str] = None,
) -> SchemaRegistry:
    """Load declarations from a schema file or an application module."""
    if file_path:
        return load_schema_file(file_path)
    if module_path:
        cloud = Cloud(store)
        await load_module(module_path, cloud)
        return cloud.registry
    raise ValueError("Either --module or --file is required")


async def _run(args: argparse.Namespace) -> int:
    store = create_schema_store(StoreConfig.from_env())
    await store.connect()
    try:
        cli = SchemaCLI(store)

        if args.command == "export":
            registry = await _load_registry(store, args.module, args.file)
            registry.freeze()
            output = cli.export(registry)
            if args.output:
                with open(args.output, "w") as f:
                    f.write(output)
                print(f"Schema exported to {args.output}", file=sys.stderr)
            else:
                print(output)
            return 0

        if args.command == "plan":
            registry = await _load_registry(store, args.module, args.file)
            changes = await cli.plan(registry, reset=args.reset)
            print(format_changes(changes, args.format))
            return 1 if any(c.is_destructive for c in changes) else 0

        if args.command == "sync":
            registry = await _load_registry(store, args.module, args.file)
            result = await cli.sync(registry)
            print(
                f"Sync complete: {len(result.created)} created, "
                f"{len(result.deleted)} deleted, {len(result.updated)} updated"
            )
            return 0

        if args.command == "reset":
            if not args.yes:
                print("Refusing to reset without --yes", file=sys.stderr)
                return 2
            deleted = await cli.reset()
            print(f"Reset complete: {len(deleted)} classes deleted")
            return 0

        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await store.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="cloudsync schema management tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_source(sub: argparse.ArgumentParser) -> None:
        source = sub.add_mutually_exclusive_group(required=True)
        source.add_argument("--module", help="Python module registering the schemas")
        source.add_argument("--file", help="JSON or YAML schema file")

    export_parser = subparsers.add_parser("export", help="Export declarations to JSON")
    add_source(export_parser)
    export_parser.add_argument("--output", "-o", help="Output file (default: stdout)")

    plan_parser = subparsers.add_parser("plan", help="Show changes a sync would apply")
    add_source(plan_parser)
    plan_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )
    plan_parser.add_argument(
        "--reset", action="store_true", help="Plan a reset before the sync"
    )

    sync_parser = subparsers.add_parser("sync", help="Apply declarations to the store")
    add_source(sync_parser)

    reset_parser = subparsers.add_parser("reset", help="Purge and delete every remote class")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm the reset")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for schema tool."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
