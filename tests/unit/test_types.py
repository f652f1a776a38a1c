"""
Unit tests for schema types.

Tests cover:
- FieldSpec creation and kind-specific validation
- Store representation (to_dict/from_dict)
- Value equality limited to store-visible attributes
- SchemaDefinition validation and serialization
"""

import pytest

from cloud.cloudsync.errors import InvalidFieldError
from cloud.cloudsync.schema.types import (
    FieldSpec,
    FieldType,
    NestedSchema,
    SchemaDefinition,
    field,
    is_internal_name,
    protected_fields,
)


class TestFieldSpec:
    """Tests for FieldSpec."""

    def test_create_string_field(self):
        f = field("String", required=True)
        assert f.type == FieldType.STRING
        assert f.required is True
        assert f.default_value is None

    def test_unknown_type_raises(self):
        with pytest.raises(InvalidFieldError, match="Invalid field type"):
            field("Text")

    def test_invalid_field_error_is_value_error(self):
        with pytest.raises(ValueError):
            field("Text")

    def test_pointer_requires_target_class(self):
        with pytest.raises(InvalidFieldError, match="target_class required"):
            field("Pointer")

    def test_relation_requires_target_class(self):
        with pytest.raises(InvalidFieldError, match="target_class required"):
            field("Relation")

    def test_target_class_rejected_on_string(self):
        with pytest.raises(InvalidFieldError, match="target_class"):
            field("String", target_class="User")

    def test_schema_only_on_object_and_array(self):
        nested = NestedSchema("Address", fields={"city": field("String")})
        assert field("Object", schema=nested).schema == nested
        assert field("Array", schema=nested).schema == nested
        with pytest.raises(InvalidFieldError, match="schema"):
            field("String", schema=nested)

    def test_is_time_only_on_date(self):
        assert field("Date", is_time=True).is_time is True
        with pytest.raises(InvalidFieldError, match="is_time"):
            field("Number", is_time=True)

    def test_relation_cannot_have_default(self):
        with pytest.raises(InvalidFieldError, match="default"):
            field("Relation", target_class="User", default_value="x")

    def test_to_dict_minimal(self):
        assert field("Number").to_dict() == {"type": "Number"}

    def test_to_dict_full(self):
        f = field("Pointer", target_class="Team", required=True)
        assert f.to_dict() == {"type": "Pointer", "targetClass": "Team", "required": True}

    def test_options_exclude_type(self):
        f = field("String", required=True, default_value="anon")
        assert f.options() == {"required": True, "defaultValue": "anon"}

    def test_date_default_encoded(self):
        f = field("Date", default_value="2024-01-01T00:00:00.000Z")
        assert f.to_dict()["defaultValue"] == {
            "__type": "Date",
            "iso": "2024-01-01T00:00:00.000Z",
        }

    def test_from_dict_roundtrip_date_default(self):
        f = field("Date", default_value="2024-01-01T00:00:00.000Z")
        assert FieldSpec.from_dict(f.to_dict()) == f

    def test_from_dict_normalizes_required_false(self):
        """The store may report required: false explicitly."""
        remote = FieldSpec.from_dict({"type": "String", "required": False})
        assert remote == field("String")

    def test_from_dict_without_type_raises(self):
        with pytest.raises(InvalidFieldError, match="has no type"):
            FieldSpec.from_dict({"required": True}, name="age")

    def test_equality_is_by_value(self):
        assert field("Number", default_value=0) == field("Number", default_value=0)
        assert field("Number") != field("String")
        assert field("String") != field("String", required=True)

    def test_local_annotations_not_compared(self):
        """Nested schema and is_time never reach the store, so they don't affect equality."""
        nested = NestedSchema("Address", fields={"city": field("String")})
        assert field("Object", schema=nested) == field("Object")
        assert field("Date", is_time=True) == field("Date")

    def test_tuple_default_stored_as_list(self):
        f = field("Array", default_value=("a", ("b",)))

        assert f.default_value == ["a", ["b"]]
        assert f == FieldSpec.from_dict({"type": "Array", "defaultValue": ["a", ["b"]]})

    def test_local_annotations_not_serialized(self):
        nested = NestedSchema("Address", fields={"city": field("String")})
        assert field("Object", schema=nested).to_dict() == {"type": "Object"}


class TestSchemaDefinition:
    """Tests for SchemaDefinition."""

    def test_create(self):
        user = SchemaDefinition(
            class_name="User",
            fields={"nickname": field("String")},
            indexes={"nickname_1": {"nickname": 1}},
            class_level_permissions={"find": {"*": True}},
        )
        assert user.class_name == "User"
        assert "nickname" in user.fields

    def test_empty_class_name_raises(self):
        with pytest.raises(ValueError, match="class_name cannot be empty"):
            SchemaDefinition(class_name="")

    def test_store_managed_field_rejected(self):
        with pytest.raises(InvalidFieldError, match="store-managed"):
            SchemaDefinition(class_name="User", fields={"objectId": field("String")})

    def test_non_fieldspec_rejected(self):
        with pytest.raises(InvalidFieldError, match="must be a FieldSpec"):
            SchemaDefinition(class_name="User", fields={"age": {"type": "Number"}})

    def test_to_dict(self):
        user = SchemaDefinition(
            class_name="User",
            fields={"age": field("Number", required=True)},
            indexes={"age_1": {"age": 1}},
            class_level_permissions={"get": {"*": True}},
        )
        assert user.to_dict() == {
            "className": "User",
            "fields": {"age": {"type": "Number", "required": True}},
            "indexes": {"age_1": {"age": 1}},
            "classLevelPermissions": {"get": {"*": True}},
        }

    def test_to_dict_omits_empty_sections(self):
        assert SchemaDefinition("Empty").to_dict() == {"className": "Empty", "fields": {}}

    def test_from_dict_camel_case(self):
        data = {
            "className": "Post",
            "fields": {"author": {"type": "Pointer", "targetClass": "_User"}},
            "indexes": {"author_1": {"author": 1}},
            "classLevelPermissions": {"find": {"*": True}},
        }
        post = SchemaDefinition.from_dict(data)
        assert post.fields["author"] == field("Pointer", target_class="_User")
        assert post.to_dict() == data

    def test_from_dict_snake_case(self):
        post = SchemaDefinition.from_dict({"class_name": "Post", "fields": None})
        assert post.class_name == "Post"
        assert post.fields == {}

    def test_from_dict_without_name_raises(self):
        with pytest.raises(ValueError, match="no className"):
            SchemaDefinition.from_dict({"fields": {}})


class TestNames:
    """Tests for reserved-name helpers."""

    def test_internal_names(self):
        assert is_internal_name("_User")
        assert is_internal_name("_id_")
        assert not is_internal_name("User")

    def test_protected_fields_for_user_class(self):
        protected = protected_fields("_User")
        assert {"objectId", "ACL", "username", "password"} <= protected

    def test_protected_fields_for_session_class(self):
        protected = protected_fields("_Session")
        assert {"user", "sessionToken", "expiresAt", "restricted"} <= protected

    def test_protected_fields_for_custom_class(self):
        assert protected_fields("Post") == frozenset(
            {"objectId", "createdAt", "updatedAt", "ACL"}
        )
