"""Frozen schema models: attribute definitions, schema versions, and violations."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from cachegroup_schema.domain.errors import SchemaDefinitionError, UnknownAttributeError

AttributeScalar = bool | int | str
JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_TRUE_SPELLINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_SPELLINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class AttributeKind(StrEnum):
    BOOL = "bool"
    INT = "int"
    STRING = "string"
    STRING_SET = "string_set"
    STRING_LIST = "string_list"
    STRING_MAP = "string_map"
    OBJECT_SET = "object_set"
    NULLABLE_BOOL = "nullable_bool"


_COLLECTION_KINDS = frozenset(
    {
        AttributeKind.STRING_SET,
        AttributeKind.STRING_LIST,
        AttributeKind.STRING_MAP,
        AttributeKind.OBJECT_SET,
    }
)
_ELEMENT_KINDS = frozenset({AttributeKind.STRING_SET, AttributeKind.STRING_LIST})


class Presence(StrEnum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    COMPUTED = "computed"
    OPTIONAL_COMPUTED = "optional_computed"


class NullableBool(StrEnum):
    """Tri-state boolean whose values double as the wire encoding."""

    TRUE = "true"
    FALSE = "false"
    UNSET = ""

    @classmethod
    def parse(cls, value: object) -> NullableBool:
        """Convert a wire string, ``bool`` or ``None`` into the tri-state value."""

        if isinstance(value, NullableBool):
            return value
        if value is None:
            return cls.UNSET
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        if isinstance(value, str):
            if value == "":
                return cls.UNSET
            if value in _TRUE_SPELLINGS:
                return cls.TRUE
            if value in _FALSE_SPELLINGS:
                return cls.FALSE
        raise ValueError(f"invalid nullable boolean {value!r}; expected 'true', 'false' or unset")

    def to_wire(self) -> str:
        return self.value

    def to_python(self) -> bool | None:
        if self is NullableBool.UNSET:
            return None
        return self is NullableBool.TRUE


class ViolationKind(StrEnum):
    UNKNOWN_ATTRIBUTE = "unknown_attribute"
    VALIDATION_FAILURE = "validation_failure"
    CONFLICT = "conflict"
    CARDINALITY = "cardinality"
    MISSING_REQUIRED = "missing_required"
    NOT_CONFIGURABLE = "not_configurable"


class Validator(Protocol):
    """Pure predicate: returns a failure message, or ``None`` when the value passes."""

    def __call__(self, value: object) -> str | None: ...

    def describe(self) -> str: ...


class Normalizer(Protocol):
    """Pure function producing the canonical stored form of a value."""

    def __call__(self, value: object) -> object: ...

    def describe(self) -> str: ...


class DiffSuppressor(Protocol):
    """Pure rule deciding whether a proposed change should be treated as unchanged."""

    def __call__(self, old: object, new: object, *, is_new_resource: bool) -> bool: ...

    def describe(self) -> str: ...


@dataclass(frozen=True, slots=True)
class AttributeDefinition:
    """One attribute of a schema version and its constraint metadata."""

    name: str
    kind: AttributeKind
    presence: Presence
    immutable: bool = False
    sensitive: bool = False
    default: AttributeScalar | None = None
    validators: tuple[Validator, ...] = ()
    element_validators: tuple[Validator, ...] = ()
    normalizer: Normalizer | None = None
    suppressor: DiffSuppressor | None = None
    conflicts_with: frozenset[str] = frozenset()
    max_items: int | None = None
    element_schema: tuple[AttributeDefinition, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise SchemaDefinitionError("attribute name must be a non-empty string")
        object.__setattr__(self, "kind", AttributeKind(self.kind))
        object.__setattr__(self, "presence", Presence(self.presence))
        object.__setattr__(self, "validators", tuple(self.validators))
        object.__setattr__(self, "element_validators", tuple(self.element_validators))
        object.__setattr__(self, "conflicts_with", frozenset(self.conflicts_with))
        object.__setattr__(self, "element_schema", tuple(self.element_schema))

        where = f"attribute {self.name!r}"
        if self.default is not None and self.presence not in (
            Presence.OPTIONAL,
            Presence.OPTIONAL_COMPUTED,
        ):
            raise SchemaDefinitionError(f"{where}: only optional attributes may declare a default")
        if self.max_items is not None:
            if self.kind not in _COLLECTION_KINDS:
                raise SchemaDefinitionError(f"{where}: max_items requires a collection kind")
            if self.max_items < 1:
                raise SchemaDefinitionError(f"{where}: max_items must be >= 1")
        if self.element_schema and self.kind is not AttributeKind.OBJECT_SET:
            raise SchemaDefinitionError(f"{where}: element_schema requires kind object_set")
        if self.element_validators and self.kind not in _ELEMENT_KINDS:
            raise SchemaDefinitionError(
                f"{where}: element_validators require a string set or string list"
            )
        if self.name in self.conflicts_with:
            raise SchemaDefinitionError(f"{where}: cannot conflict with itself")
        nested = [item.name for item in self.element_schema]
        if len(set(nested)) != len(nested):
            raise SchemaDefinitionError(f"{where}: duplicate nested attribute names")

    @property
    def is_collection(self) -> bool:
        return self.kind in _COLLECTION_KINDS

    @property
    def is_configurable(self) -> bool:
        return self.presence is not Presence.COMPUTED

    @property
    def is_required(self) -> bool:
        return self.presence is Presence.REQUIRED

    def element(self, name: str) -> AttributeDefinition | None:
        for item in self.element_schema:
            if item.name == name:
                return item
        return None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "name": self.name,
            "kind": self.kind.value,
            "presence": self.presence.value,
            "immutable": self.immutable,
            "sensitive": self.sensitive,
        }
        if self.default is not None:
            payload["default"] = self.default
        if self.validators:
            payload["validators"] = [item.describe() for item in self.validators]
        if self.element_validators:
            payload["element_validators"] = [item.describe() for item in self.element_validators]
        if self.normalizer is not None:
            payload["normalizer"] = self.normalizer.describe()
        if self.suppressor is not None:
            payload["suppressor"] = self.suppressor.describe()
        if self.conflicts_with:
            payload["conflicts_with"] = sorted(self.conflicts_with)
        if self.max_items is not None:
            payload["max_items"] = self.max_items
        if self.element_schema:
            payload["element_schema"] = [item.to_dict() for item in self.element_schema]
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True, slots=True)
class SchemaViolation:
    """Single structured violation found while validating a config or state."""

    kind: ViolationKind
    attribute: str
    message: str
    related: str | None = None
    limit: int | None = None
    actual: int | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "kind": self.kind.value,
            "attribute": self.attribute,
            "message": self.message,
        }
        if self.related is not None:
            payload["related"] = self.related
        if self.limit is not None:
            payload["limit"] = self.limit
        if self.actual is not None:
            payload["actual"] = self.actual
        return payload


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Complete validation result: every violation from a single pass."""

    schema_version: int
    violations: tuple[SchemaViolation, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def of_kind(self, kind: ViolationKind) -> tuple[SchemaViolation, ...]:
        return tuple(item for item in self.violations if item.kind is kind)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "schema_version": self.schema_version,
            "valid": self.is_valid,
            "violations": [item.to_dict() for item in self.violations],
        }


@dataclass(frozen=True, slots=True)
class SchemaDelta:
    """Attribute-level differences between two schema versions."""

    from_version: int
    to_version: int
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    redefaulted: tuple[str, ...] = ()
    retyped: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SchemaVersion:
    """Immutable, ordered snapshot of every attribute for one resource version."""

    resource_type: str
    version: int
    attributes: tuple[AttributeDefinition, ...]
    _index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.version, bool) or not isinstance(self.version, int):
            raise SchemaDefinitionError("schema version must be an integer")
        if self.version < 0:
            raise SchemaDefinitionError("schema version must be >= 0")
        attributes = tuple(self.attributes)
        object.__setattr__(self, "attributes", attributes)

        index: dict[str, int] = {}
        for position, definition in enumerate(attributes):
            if definition.name in index:
                raise SchemaDefinitionError(
                    f"schema version {self.version}: duplicate attribute {definition.name!r}"
                )
            index[definition.name] = position
        for definition in attributes:
            missing = sorted(name for name in definition.conflicts_with if name not in index)
            if missing:
                raise SchemaDefinitionError(
                    f"schema version {self.version}: attribute {definition.name!r} "
                    f"conflicts with undeclared attributes {missing}"
                )
        object.__setattr__(self, "_index", index)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __iter__(self) -> Iterator[AttributeDefinition]:
        return iter(self.attributes)

    def __len__(self) -> int:
        return len(self.attributes)

    def get(self, name: str) -> AttributeDefinition:
        position = self._index.get(name)
        if position is None:
            raise UnknownAttributeError(name, schema_version=self.version)
        return self.attributes[position]

    def index_of(self, name: str) -> int:
        position = self._index.get(name)
        if position is None:
            raise UnknownAttributeError(name, schema_version=self.version)
        return position

    def names(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.attributes)

    def definitions(self) -> tuple[AttributeDefinition, ...]:
        return self.attributes

    def evolve(
        self,
        version: int,
        *,
        add: Iterable[AttributeDefinition] = (),
        remove: Iterable[str] = (),
        replace: Iterable[AttributeDefinition] = (),
    ) -> SchemaVersion:
        """Derive the next version from this one; ``self`` is left untouched."""

        if version <= self.version:
            raise SchemaDefinitionError(
                f"evolved version {version} must be newer than {self.version}"
            )
        removed = frozenset(remove)
        replacements = {item.name: item for item in replace}
        for name in sorted(removed | set(replacements)):
            if name not in self._index:
                raise UnknownAttributeError(name, schema_version=self.version)

        evolved: list[AttributeDefinition] = []
        for definition in self.attributes:
            if definition.name in removed:
                continue
            evolved.append(replacements.get(definition.name, definition))
        evolved.extend(add)
        return SchemaVersion(
            resource_type=self.resource_type,
            version=version,
            attributes=tuple(evolved),
        )

    def diff(self, older: SchemaVersion) -> SchemaDelta:
        """Describe what changed between ``older`` and this version."""

        shared = [item.name for item in self.attributes if item.name in older]
        return SchemaDelta(
            from_version=older.version,
            to_version=self.version,
            added=tuple(item.name for item in self.attributes if item.name not in older),
            removed=tuple(item.name for item in older.attributes if item.name not in self),
            redefaulted=tuple(
                name for name in shared if self.get(name).default != older.get(name).default
            ),
            retyped=tuple(name for name in shared if self.get(name).kind != older.get(name).kind),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "resource_type": self.resource_type,
            "version": self.version,
            "attributes": [item.to_dict() for item in self.attributes],
        }


__all__ = [
    "AttributeDefinition",
    "AttributeKind",
    "AttributeScalar",
    "DiffSuppressor",
    "JSONScalar",
    "JSONValue",
    "Normalizer",
    "NullableBool",
    "Presence",
    "SchemaDelta",
    "SchemaVersion",
    "SchemaViolation",
    "ValidationReport",
    "Validator",
    "ViolationKind",
]
