"""
Unit tests for the schema CLI.

Tests cover:
- Export output
- Plan formatting and exit codes
- Sync and reset commands against the in-memory store
"""

import json

import pytest

from cloud.cloudsync.apply.plan import ChangeKind, SchemaChange
from cloud.cloudsync.schema.registry import SchemaRegistry
from cloud.cloudsync.schema.types import SchemaDefinition, field
from cloud.cloudsync.store.memory import InMemorySchemaStore
from cloud.cloudsync.tools.schema_cli import SchemaCLI, build_parser, format_changes, main


@pytest.fixture
def registry():
    reg = SchemaRegistry()
    reg.register(SchemaDefinition("Post", fields={"title": field("String")}))
    return reg


@pytest.fixture
async def store():
    s = InMemorySchemaStore()
    await s.connect()
    yield s
    await s.close()


class TestSchemaCLI:
    """Tests for SchemaCLI."""

    def test_export(self, registry):
        registry.freeze()

        data = json.loads(SchemaCLI(InMemorySchemaStore()).export(registry))

        assert data["version"] == 1
        assert data["fingerprint"] == registry.fingerprint
        assert data["schema"]["classes"][0]["className"] == "Post"

    def test_export_unfrozen(self, registry):
        data = json.loads(SchemaCLI(InMemorySchemaStore()).export(registry))

        assert data["fingerprint"] == "unfrozen"

    @pytest.mark.asyncio
    async def test_plan_does_not_write(self, store, registry):
        store.add_schema({"className": "Legacy"})

        changes = await SchemaCLI(store).plan(registry)

        assert [(c.kind, c.path) for c in changes] == [
            (ChangeKind.CLASS_ADDED, "Class:Post"),
            (ChangeKind.CLASS_REMOVED, "Class:Legacy"),
        ]
        assert store.operations == [("list_all",)]

    @pytest.mark.asyncio
    async def test_sync(self, store, registry):
        result = await SchemaCLI(store).sync(registry)

        assert result.created == ["Post"]
        assert store.class_names() == ["Post"]

    @pytest.mark.asyncio
    async def test_reset(self, store):
        store.add_schema({"className": "A"})
        store.add_schema({"className": "_Session"})

        deleted = await SchemaCLI(store).reset()

        assert deleted == ["A", "_Session"]
        assert store.class_names() == []


class TestFormatChanges:
    """Tests for format_changes."""

    def test_no_changes(self):
        assert format_changes([]) == "No changes detected"

    def test_text(self):
        changes = [
            SchemaChange(ChangeKind.CLASS_ADDED, "Class:Post", message="Class 'Post' created"),
            SchemaChange(ChangeKind.FIELD_REMOVED, "Class:Post.field:old", message="gone"),
        ]

        output = format_changes(changes)

        assert output.splitlines()[0] == "Found 2 change(s):"
        assert "[OK] CLASS_ADDED: Class:Post" in output
        assert "[DESTRUCTIVE] FIELD_REMOVED: Class:Post.field:old" in output

    def test_json(self):
        changes = [SchemaChange(ChangeKind.INDEX_ADDED, "Class:Post.index:title_1")]

        data = json.loads(format_changes(changes, "json"))

        assert data[0]["kind"] == "INDEX_ADDED"
        assert data[0]["is_destructive"] is False


class TestCommandLine:
    """Tests for the command-line entry point."""

    @pytest.fixture(autouse=True)
    def memory_backend(self, monkeypatch):
        monkeypatch.setenv("CLOUD_STORE_BACKEND", "memory")

    @pytest.fixture
    def schema_file(self, tmp_path):
        path = tmp_path / "schema.yaml"
        path.write_text("classes:\n  - className: Post\n    fields:\n      title: {type: String}\n")
        return str(path)

    def test_source_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["plan"])

    def test_module_and_file_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["sync", "--module", "a", "--file", "b"])

    def test_plan_exit_code(self, schema_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["plan", "--file", schema_file])

        assert exc_info.value.code == 0
        assert "CLASS_ADDED: Class:Post" in capsys.readouterr().out

    def test_sync_command(self, schema_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["sync", "--file", schema_file])

        assert exc_info.value.code == 0
        assert "Sync complete: 1 created, 0 deleted, 0 updated" in capsys.readouterr().out

    def test_reset_requires_confirmation(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["reset"])

        assert exc_info.value.code == 2
        assert "--yes" in capsys.readouterr().err

    def test_export_to_file(self, schema_file, tmp_path):
        output = tmp_path / "out.json"

        with pytest.raises(SystemExit) as exc_info:
            main(["export", "--file", schema_file, "--output", str(output)])

        assert exc_info.value.code == 0
        data = json.loads(output.read_text())
        assert data["fingerprint"].startswith("sha256:")
