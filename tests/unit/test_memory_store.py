"""
Unit tests for the in-memory schema store.

Tests cover:
- Connection lifecycle
- Class creation, purge and deletion
- Change set commits and their rejections
- Failure injection helpers
"""

import pytest

from cloud.cloudsync.errors import ErrorCode, StoreConnectionError, StoreError
from cloud.cloudsync.schema.types import SchemaDefinition, field
from cloud.cloudsync.store.base import SchemaChangeSet, SchemaStore
from cloud.cloudsync.store.memory import InMemorySchemaStore


class TestInMemorySchemaStore:
    """Tests for InMemorySchemaStore."""

    @pytest.fixture
    async def store(self):
        """Create a connected store."""
        s = InMemorySchemaStore()
        await s.connect()
        yield s
        await s.close()

    def test_implements_protocol(self):
        assert isinstance(InMemorySchemaStore(), SchemaStore)

    @pytest.mark.asyncio
    async def test_connect_disconnect(self):
        """Test connection lifecycle."""
        store = InMemorySchemaStore()
        assert not store.is_connected

        await store.connect()
        assert store.is_connected

        await store.close()
        assert not store.is_connected

    @pytest.mark.asyncio
    async def test_requires_connection(self):
        store = InMemorySchemaStore()

        with pytest.raises(StoreConnectionError):
            await store.list_all()

    @pytest.mark.asyncio
    async def test_save_adds_default_fields(self, store):
        await store.save(SchemaDefinition("User", fields={"nickname": field("String")}))

        user = store.get("User")
        assert set(user.fields) == {"objectId", "createdAt", "updatedAt", "ACL", "nickname"}
        assert store.operations == [("save", "User")]

    @pytest.mark.asyncio
    async def test_save_existing_class_rejected(self, store):
        store.add_schema({"className": "User"})

        with pytest.raises(StoreError) as exc_info:
            await store.save(SchemaDefinition("User"))

        assert exc_info.value.code == ErrorCode.INVALID_CLASS_NAME
        assert store.operations == []

    @pytest.mark.asyncio
    async def test_list_all_returns_copies(self, store):
        store.add_schema({"className": "User", "fields": {"age": {"type": "Number"}}})

        schemas = await store.list_all()
        schemas[0].fields.clear()

        assert "age" in store.get("User").fields

    @pytest.mark.asyncio
    async def test_delete_non_empty_class_rejected(self, store):
        store.add_schema({"className": "Legacy"}, records=3)

        with pytest.raises(StoreError, match="not empty"):
            await store.delete_class("Legacy")

    @pytest.mark.asyncio
    async def test_purge_then_delete(self, store):
        store.add_schema({"className": "Legacy"}, records=3)

        await store.purge("Legacy")
        assert store.record_count("Legacy") == 0
        await store.delete_class("Legacy")

        assert store.class_names() == []
        assert store.operations == [("purge", "Legacy"), ("delete_class", "Legacy")]

    @pytest.mark.asyncio
    async def test_commit_applies_in_order(self, store):
        store.add_schema({
            "className": "User",
            "fields": {"legacy": {"type": "String"}},
            "indexes": {"legacy_1": {"legacy": 1}},
        })
        changes = (
            SchemaChangeSet("User")
            .delete_field("legacy")
            .add_field("age", field("Number"))
            .delete_index("legacy_1")
            .add_index("age_1", {"age": 1})
        )

        await store.commit(changes)

        user = store.get("User")
        assert user.fields["age"] == {"type": "Number"}
        assert "legacy" not in user.fields
        assert user.indexes == {"age_1": {"age": 1}}
        assert store.operations == [
            ("delete_field", "User", "legacy"),
            ("add_field", "User", "age"),
            ("delete_index", "User", "legacy_1"),
            ("add_index", "User", "age_1"),
            ("commit", "User"),
        ]

    @pytest.mark.asyncio
    async def test_commit_unknown_class_rejected(self, store):
        with pytest.raises(StoreError) as exc_info:
            await store.commit(SchemaChangeSet("Missing").add_field("a", field("String")))

        assert exc_info.value.code == ErrorCode.INVALID_CLASS_NAME

    @pytest.mark.asyncio
    async def test_rejected_commit_changes_nothing(self, store):
        """A commit with one invalid mutation applies none of them."""
        store.add_schema({"className": "User"})
        changes = (
            SchemaChangeSet("User")
            .add_field("age", field("Number"))
            .delete_field("missing")
        )

        with pytest.raises(StoreError, match="does not exist"):
            await store.commit(changes)

        assert "age" not in store.get("User").fields
        assert store.operations == []

    @pytest.mark.asyncio
    async def test_managed_field_cannot_be_deleted(self, store):
        store.add_schema({"className": "User"})

        with pytest.raises(StoreError, match="cannot be changed"):
            await store.commit(SchemaChangeSet("User").delete_field("objectId"))

    @pytest.mark.asyncio
    async def test_existing_field_cannot_be_added(self, store):
        store.add_schema({"className": "User", "fields": {"age": {"type": "String"}}})

        with pytest.raises(StoreError, match="exists"):
            await store.commit(SchemaChangeSet("User").add_field("age", field("Number")))

    @pytest.mark.asyncio
    async def test_fail_on_class(self, store):
        store.add_schema({"className": "A"})
        store.add_schema({"className": "B"})
        store.fail_on("purge", class_name="A")

        with pytest.raises(StoreError, match="Injected failure"):
            await store.purge("A")
        await store.purge("B")

        assert store.operations == [("purge", "B")]

    @pytest.mark.asyncio
    async def test_fail_on_field_name(self, store):
        store.add_schema({"className": "User"})
        store.fail_on("add_field", class_name="User", name="bad")

        await store.commit(SchemaChangeSet("User").add_field("good", field("String")))
        with pytest.raises(StoreError):
            await store.commit(SchemaChangeSet("User").add_field("bad", field("String")))

    @pytest.mark.asyncio
    async def test_fail_on_custom_error(self, store):
        store.fail_on("list_all", error=RuntimeError("boom"))

        with pytest.raises(RuntimeError, match="boom"):
            await store.list_all()


class TestSchemaChangeSet:
    """Tests for SchemaChangeSet."""

    def test_empty(self):
        assert SchemaChangeSet("User").is_empty

    def test_update_payload(self):
        changes = (
            SchemaChangeSet("User")
            .delete_field("legacy")
            .add_field("age", field("Number", required=True))
            .delete_index("old_1")
        )

        assert changes.to_update_payload() == {
            "className": "User",
            "fields": {
                "legacy": {"__op": "Delete"},
                "age": {"type": "Number", "required": True},
            },
            "indexes": {"old_1": {"__op": "Delete"}},
        }
