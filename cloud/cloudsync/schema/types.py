"""
Core type definitions for cloudsync schema declarations.

This module defines the foundational types for declared data classes:
- FieldType: Closed enumeration of the field kinds the store supports
- FieldSpec: Definition of a single field (one variant per FieldType)
- NestedSchema: Shape annotation for Object/Array fields
- SchemaDefinition: A declared class with fields, indexes and permissions

Invariants:
    - class_name must be non-empty
    - Store-managed fields (objectId, createdAt, updatedAt, ACL) are never declared
    - target_class is required for Pointer/Relation fields
    - Kind-specific options are only accepted on their own kind
    - Definitions are immutable once constructed

How to change safely:
    - Add new kinds to FieldType and to _KIND_OPTIONS together
    - Keep to_dict() in the store's JSON shape; the reconciler compares
      against what the store reports
    - Local-only annotations must be excluded from equality

Example:
    >>> from cloud.cloudsync.schema.types import SchemaDefinition, field
    >>> User = SchemaDefinition(
    ...     class_name="User",
    ...     fields={
    ...         "nickname": field("String", required=True),
    ...         "team": field("Pointer", target_class="Team"),
    ...     },
    ...     indexes={"nickname_1": {"nickname": 1}},
    ... )
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Mapping

from ..errors import InvalidFieldError

# Fields the store creates and manages on every class.
STORE_MANAGED_FIELDS = frozenset({"objectId", "createdAt", "updatedAt", "ACL"})

# Default fields of the store's system classes.
SYSTEM_CLASS_FIELDS: dict[str, frozenset[str]] = {
    "_User": frozenset({"username", "password", "email", "emailVerified", "authData"}),
    "_Role": frozenset({"name", "users", "roles"}),
    "_Session": frozenset(
        {"user", "installationId", "sessionToken", "expiresAt", "createdWith", "restricted"}
    ),
    "_Installation": frozenset(
        {
            "installationId",
            "deviceToken",
            "channels",
            "deviceType",
            "pushType",
            "GCMSenderId",
            "timeZone",
            "localeIdentifier",
            "badge",
            "appVersion",
            "appName",
            "appIdentifier",
            "parseVersion",
        }
    ),
}


def is_internal_name(name: str) -> bool:
    """Whether a name belongs to the store (e.g. _User, _Role, _id_)."""
    return name.startswith("_")


def protected_fields(class_name: str) -> frozenset[str]:
    """Field names the reconciler never adds, removes or replaces on a class."""
    return STORE_MANAGED_FIELDS | SYSTEM_CLASS_FIELDS.get(class_name, frozenset())


class FieldType(Enum):
    """Supported field kinds.

    Values are the type names used on the wire.
    """

    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    DATE = "Date"
    FILE = "File"
    GEOPOINT = "GeoPoint"
    POLYGON = "Polygon"
    OBJECT = "Object"
    ARRAY = "Array"
    POINTER = "Pointer"
    RELATION = "Relation"

    @classmethod
    def from_str(cls, value: str) -> FieldType:
        """Convert a wire type name to FieldType.

        Args:
            value: Type name as reported by the store

        Returns:
            Corresponding FieldType

        Raises:
            InvalidFieldError: If value is not a supported kind
        """
        for kind in cls:
            if kind.value == value:
                return kind
        valid = [k.value for k in cls]
        raise InvalidFieldError(f"Invalid field type '{value}'. Valid types: {valid}")


# Which optional attributes each kind accepts.
_KIND_OPTIONS: dict[FieldType, frozenset[str]] = {
    FieldType.STRING: frozenset(),
    FieldType.NUMBER: frozenset(),
    FieldType.BOOLEAN: frozenset(),
    FieldType.DATE: frozenset({"is_time"}),
    FieldType.FILE: frozenset(),
    FieldType.GEOPOINT: frozenset(),
    FieldType.POLYGON: frozenset(),
    FieldType.OBJECT: frozenset({"target_class", "schema"}),
    FieldType.ARRAY: frozenset({"target_class", "schema"}),
    FieldType.POINTER: frozenset({"target_class"}),
    FieldType.RELATION: frozenset({"target_class"}),
}


@dataclass(frozen=True)
class NestedSchema:
    """Shape of the values held by an Object or Array field.

    Attributes:
        class_name: Label for the nested shape
        fields: Nested field definitions
    """

    class_name: str
    fields: Mapping[str, FieldSpec] = dataclass_field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "className": self.class_name,
            "fields": {name: spec.to_dict() for name, spec in self.fields.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NestedSchema:
        return cls(
            class_name=data["className"],
            fields={
                name: FieldSpec.from_dict(spec, name=name)
                for name, spec in data.get("fields", {}).items()
            },
        )


@dataclass(frozen=True)
class FieldSpec:
    """Definition of a single field of a class.

    Equality is value equality over the store-visible attributes, so a
    declared field can be compared directly with one parsed from the store.

    Attributes:
        type: The field kind
        required: Whether the store rejects records without this field
        default_value: Value the store fills in when absent
        target_class: Referenced class (Pointer/Relation, optional for Object/Array)
        is_time: Date fields only; local annotation, not sent to the store
        schema: Object/Array fields only; local annotation, not sent to the store

    Invariants:
        - Pointer and Relation always have a target_class
        - Options not listed for a kind in _KIND_OPTIONS are rejected
    """

    type: FieldType
    required: bool = False
    default_value: Any = None
    target_class: str | None = None
    is_time: bool = dataclass_field(default=False, compare=False)
    schema: NestedSchema | None = dataclass_field(default=None, compare=False)

    def __post_init__(self) -> None:
        """Validate kind-specific attributes."""
        if not isinstance(self.type, FieldType):
            raise InvalidFieldError(f"Field type must be a FieldType, got {self.type!r}")

        allowed = _KIND_OPTIONS[self.type]
        used = {
            "target_class": self.target_class is not None,
            "is_time": self.is_time,
            "schema": self.schema is not None,
        }
        for option, present in used.items():
            if present and option not in allowed:
                raise InvalidFieldError(
                    f"Option '{option}' is not valid for {self.type.value} fields"
                )

        if self.type in (FieldType.POINTER, FieldType.RELATION) and not self.target_class:
            raise InvalidFieldError(f"target_class required for {self.type.value} fields")
        if self.type == FieldType.RELATION and self.default_value is not None:
            raise InvalidFieldError("Relation fields cannot have a default value")
        # The store reports JSON arrays and objects, never tuples.
        object.__setattr__(self, "default_value", _plain_json(self.default_value))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the store's field representation."""
        result: dict[str, Any] = {"type": self.type.value}
        if self.target_class is not None:
            result["targetClass"] = self.target_class
        if self.required:
            result["required"] = True
        if self.default_value is not None:
            result["defaultValue"] = _encode_default(self.type, self.default_value)
        return result

    def options(self) -> dict[str, Any]:
        """Store-facing options, i.e. everything except the type."""
        result = self.to_dict()
        del result["type"]
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], name: str | None = None) -> FieldSpec:
        """Create from a declaration or from the store's field representation.

        Args:
            data: Mapping with at least a "type" key
            name: Field name, used in error messages only

        Raises:
            InvalidFieldError: If the mapping does not describe a valid field
        """
        if "type" not in data:
            raise InvalidFieldError(f"Field '{name}' has no type", field_name=name)
        kind = FieldType.from_str(data["type"])
        schema = data.get("schema")
        default = data.get("defaultValue")
        return cls(
            type=kind,
            required=bool(data.get("required", False)),
            default_value=_decode_default(kind, default) if default is not None else None,
            target_class=data.get("targetClass"),
            is_time=bool(data.get("isTime", False)),
            schema=NestedSchema.from_dict(schema) if schema is not None else None,
        )


def _plain_json(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _plain_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain_json(item) for item in value]
    return value


def _encode_default(kind: FieldType, value: Any) -> Any:
    if kind == FieldType.DATE and isinstance(value, str):
        return {"__type": "Date", "iso": value}
    return value


def _decode_default(kind: FieldType, value: Any) -> Any:
    if kind == FieldType.DATE and isinstance(value, Mapping) and value.get("__type") == "Date":
        return value["iso"]
    return value


def field(
    type: str | FieldType,
    *,
    required: bool = False,
    default_value: Any = None,
    target_class: str | None = None,
    is_time: bool = False,
    schema: NestedSchema | None = None,
) -> FieldSpec:
    """Convenience function to create a FieldSpec.

    This is the preferred way to declare fields.

    Example:
        >>> age = field("Number", default_value=0)
        >>> owner = field("Pointer", target_class="_User", required=True)
    """
    if isinstance(type, str):
        type = FieldType.from_str(type)
    return FieldSpec(
        type=type,
        required=required,
        default_value=default_value,
        target_class=target_class,
        is_time=is_time,
        schema=schema,
    )


@dataclass(frozen=True)
class SchemaDefinition:
    """A locally declared class.

    Attributes:
        class_name: Unique class identifier
        fields: Field name to FieldSpec
        indexes: Index name to store-specific index descriptor
        class_level_permissions: Access-control policy for the class

    Invariants:
        - class_name is non-empty
        - No declared field uses a store-managed name

    Example:
        >>> Post = SchemaDefinition(
        ...     class_name="Post",
        ...     fields={"title": field("String", required=True)},
        ... )
    """

    class_name: str
    fields: Mapping[str, FieldSpec] = dataclass_field(default_factory=dict)
    indexes: Mapping[str, Any] = dataclass_field(default_factory=dict)
    class_level_permissions: Mapping[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.class_name:
            raise ValueError("Schema class_name cannot be empty")
        managed = STORE_MANAGED_FIELDS.intersection(self.fields)
        if managed:
            raise InvalidFieldError(
                f"Class '{self.class_name}' declares store-managed fields: {sorted(managed)}",
                field_name=sorted(managed)[0],
            )
        for name, spec in self.fields.items():
            if not isinstance(spec, FieldSpec):
                raise InvalidFieldError(
                    f"Field '{name}' in class '{self.class_name}' must be a FieldSpec",
                    field_name=name,
                )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the store's class representation."""
        result: dict[str, Any] = {
            "className": self.class_name,
            "fields": {name: spec.to_dict() for name, spec in self.fields.items()},
        }
        if self.indexes:
            result["indexes"] = {name: dict(spec) for name, spec in self.indexes.items()}
        if self.class_level_permissions:
            result["classLevelPermissions"] = dict(self.class_level_permissions)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchemaDefinition:
        """Create from a declarative mapping.

        Accepts both the store's camelCase keys and snake_case keys.
        """
        class_name = data.get("className", data.get("class_name"))
        if not class_name:
            raise ValueError("Schema declaration has no className")
        fields = {
            name: FieldSpec.from_dict(spec, name=name)
            for name, spec in (data.get("fields") or {}).items()
        }
        clp = data.get("classLevelPermissions", data.get("class_level_permissions"))
        return cls(
            class_name=class_name,
            fields=fields,
            indexes=dict(data.get("indexes") or {}),
            class_level_permissions=dict(clp or {}),
        )
