"""
Attribute schema registry: validation, normalization, defaults, and diff suppression.

A registry wraps exactly one immutable ``SchemaVersion``. Validation is a
complete pass that collects every violation in a deterministic order:

1. unknown top-level keys, sorted by name;
2. per-attribute checks in declared order (presence, kind, validators,
   collection elements, nested objects, cardinality);
3. conflicting pairs, one violation per unordered pair, attributed to the
   attribute declared first.

Log events carry attribute names and violation kinds only, never values.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from cachegroup_schema.constants import REDACTED_VALUE
from cachegroup_schema.domain.errors import SchemaValidationError
from cachegroup_schema.domain.models import (
    AttributeDefinition,
    AttributeKind,
    NullableBool,
    Presence,
    SchemaVersion,
    SchemaViolation,
    ValidationReport,
    ViolationKind,
)
from cachegroup_schema.domain.snapshot import StateSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable

_KIND_EXPECTATIONS: dict[AttributeKind, str] = {
    AttributeKind.BOOL: "boolean",
    AttributeKind.INT: "integer",
    AttributeKind.STRING: "string",
    AttributeKind.STRING_SET: "set of strings",
    AttributeKind.STRING_LIST: "list of strings",
    AttributeKind.STRING_MAP: "map of strings",
    AttributeKind.OBJECT_SET: "set of objects",
    AttributeKind.NULLABLE_BOOL: "nullable boolean ('true', 'false' or unset)",
}


class AttributeRegistry:
    """Constraint services over one injected schema version."""

    def __init__(self, schema: SchemaVersion, *, logger: Any | None = None) -> None:
        self._schema = schema
        self._conflict_pairs = _conflict_pairs(schema)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def schema(self) -> SchemaVersion:
        return self._schema

    @property
    def version(self) -> int:
        return self._schema.version

    @property
    def conflict_pairs(self) -> tuple[tuple[str, str], ...]:
        """Every conflicting pair, symmetric, ordered by declaration position."""

        return self._conflict_pairs

    def lookup(self, name: str) -> AttributeDefinition:
        return self._schema.get(name)

    def definitions(self) -> tuple[AttributeDefinition, ...]:
        return self._schema.definitions()

    def validate(self, config: Mapping[str, object]) -> ValidationReport:
        """Validate a user-supplied config and return every violation found."""

        violations = self._collect(config, allow_computed=False)
        set_names = {
            definition.name
            for definition in self._schema
            if _is_set(definition, config.get(definition.name))
        }
        for first, second in self._conflict_pairs:
            if first in set_names and second in set_names:
                violations.append(
                    SchemaViolation(
                        kind=ViolationKind.CONFLICT,
                        attribute=first,
                        message=f"conflicts with {second!r}; only one of them may be set",
                        related=second,
                    )
                )
        return self._report(config, violations, mode="config")

    def validate_state(self, state: Mapping[str, object] | StateSnapshot) -> ValidationReport:
        """Validate a persisted snapshot; computed values are allowed, conflicts are not checked."""

        raw = state.to_raw() if isinstance(state, StateSnapshot) else state
        violations = self._collect(raw, allow_computed=True)
        return self._report(raw, violations, mode="state")

    def assert_valid(self, config: Mapping[str, object]) -> Mapping[str, object]:
        report = self.validate(config)
        if not report.is_valid:
            raise SchemaValidationError(report.violations)
        return config

    def normalize(self, config: Mapping[str, object]) -> dict[str, object]:
        """Return a copy with every attribute normalizer applied; unknown keys pass through."""

        normalized: dict[str, object] = {}
        for key, value in config.items():
            if key in self._schema:
                normalized[key] = _normalize_value(self._schema.get(key), value)
            else:
                normalized[key] = value
        return normalized

    def apply_defaults(self, config: Mapping[str, object]) -> dict[str, object]:
        """Insert static defaults for optional attributes the config leaves unset.

        Run this after ``validate``: conflicts are judged against what the user
        wrote, not against filled-in defaults.
        """

        resolved = dict(config)
        for definition in self._schema:
            if definition.default is None:
                continue
            if definition.presence not in (Presence.OPTIONAL, Presence.OPTIONAL_COMPUTED):
                continue
            if not _is_set(definition, resolved.get(definition.name)):
                resolved[definition.name] = definition.default
        return resolved

    def suppress_diff(
        self,
        name: str,
        old: object,
        new: object,
        *,
        is_new_resource: bool,
    ) -> bool:
        definition = self._schema.get(name)
        if definition.suppressor is None:
            return False
        return definition.suppressor(old, new, is_new_resource=is_new_resource)

    def redact(self, config: Mapping[str, object]) -> dict[str, object]:
        redacted: dict[str, object] = {}
        for key, value in config.items():
            if key in self._schema and self._schema.get(key).sensitive and value is not None:
                redacted[key] = REDACTED_VALUE
            else:
                redacted[key] = value
        return redacted

    def _collect(
        self,
        config: Mapping[str, object],
        *,
        allow_computed: bool,
    ) -> list[SchemaViolation]:
        violations: list[SchemaViolation] = []
        for key in sorted(str(item) for item in config if item not in self._schema):
            violations.append(
                SchemaViolation(
                    kind=ViolationKind.UNKNOWN_ATTRIBUTE,
                    attribute=key,
                    message=f"unknown attribute for schema version {self._schema.version}",
                )
            )
        for definition in self._schema:
            _check_attribute(
                definition,
                config.get(definition.name),
                definition.name,
                violations,
                allow_computed=allow_computed,
            )
        return violations

    def _report(
        self,
        config: Mapping[str, object],
        violations: list[SchemaViolation],
        *,
        mode: str,
    ) -> ValidationReport:
        report = ValidationReport(schema_version=self._schema.version, violations=tuple(violations))
        self._logger.info(
            "schema_validation_completed",
            resource_type=self._schema.resource_type,
            schema_version=self._schema.version,
            mode=mode,
            attributes=sorted(str(key) for key in config),
            valid=report.is_valid,
            violation_kinds=[item.kind.value for item in report.violations],
        )
        return report


def _conflict_pairs(schema: SchemaVersion) -> tuple[tuple[str, str], ...]:
    pairs: set[tuple[str, str]] = set()
    for definition in schema:
        for other in definition.conflicts_with:
            first, second = sorted((definition.name, other), key=schema.index_of)
            pairs.add((first, second))
    return tuple(
        sorted(pairs, key=lambda pair: (schema.index_of(pair[0]), schema.index_of(pair[1])))
    )


def _is_set(definition: AttributeDefinition, value: object) -> bool:
    if value is None:
        return False
    if definition.kind is AttributeKind.NULLABLE_BOOL:
        try:
            return NullableBool.parse(value) is not NullableBool.UNSET
        except ValueError:
            return True
    return True


def _check_attribute(
    definition: AttributeDefinition,
    value: object,
    path: str,
    violations: list[SchemaViolation],
    *,
    allow_computed: bool,
) -> None:
    if not _is_set(definition, value):
        if definition.is_required:
            violations.append(
                SchemaViolation(
                    kind=ViolationKind.MISSING_REQUIRED,
                    attribute=path,
                    message="required attribute is not set",
                )
            )
        return
    if not allow_computed and not definition.is_configurable:
        violations.append(
            SchemaViolation(
                kind=ViolationKind.NOT_CONFIGURABLE,
                attribute=path,
                message="computed attribute cannot be set in configuration",
            )
        )
        return
    if not _matches_kind(definition.kind, value):
        violations.append(
            SchemaViolation(
                kind=ViolationKind.VALIDATION_FAILURE,
                attribute=path,
                message=(
                    f"expected {_KIND_EXPECTATIONS[definition.kind]}, "
                    f"got {type(value).__name__}"
                ),
            )
        )
        return

    _first_failure(definition.validators, value, path, violations)
    if definition.element_validators:
        for position, member in _positioned_members(definition.kind, value):
            _first_failure(definition.element_validators, member, f"{path}[{position}]", violations)
    if definition.element_schema:
        for position, element in enumerate(value):  # type: ignore[arg-type]
            _check_object(
                definition,
                element,
                f"{path}[{position}]",
                violations,
                allow_computed=allow_computed,
            )
    if definition.max_items is not None:
        actual = _item_count(definition.kind, value)
        if actual > definition.max_items:
            violations.append(
                SchemaViolation(
                    kind=ViolationKind.CARDINALITY,
                    attribute=path,
                    message=f"at most {definition.max_items} items allowed, got {actual}",
                    limit=definition.max_items,
                    actual=actual,
                )
            )


def _check_object(
    definition: AttributeDefinition,
    element: Mapping[str, object],
    path: str,
    violations: list[SchemaViolation],
    *,
    allow_computed: bool,
) -> None:
    for key in sorted(str(item) for item in element if definition.element(item) is None):
        violations.append(
            SchemaViolation(
                kind=ViolationKind.UNKNOWN_ATTRIBUTE,
                attribute=f"{path}.{key}",
                message=f"unknown nested attribute of {definition.name!r}",
            )
        )
    for nested in definition.element_schema:
        _check_attribute(
            nested,
            element.get(nested.name),
            f"{path}.{nested.name}",
            violations,
            allow_computed=allow_computed,
        )


def _first_failure(
    validators: Iterable[Any],
    value: object,
    path: str,
    violations: list[SchemaViolation],
) -> None:
    for validator in validators:
        message = validator(value)
        if message is not None:
            violations.append(
                SchemaViolation(
                    kind=ViolationKind.VALIDATION_FAILURE,
                    attribute=path,
                    message=message,
                )
            )
            return


def _matches_kind(kind: AttributeKind, value: object) -> bool:
    if kind is AttributeKind.BOOL:
        return isinstance(value, bool)
    if kind is AttributeKind.INT:
        return isinstance(value, int) and not isinstance(value, bool)
    if kind is AttributeKind.STRING:
        return isinstance(value, str)
    if kind is AttributeKind.NULLABLE_BOOL:
        return isinstance(value, (str, bool))
    if kind is AttributeKind.STRING_SET:
        return isinstance(value, (list, tuple, set, frozenset)) and all(
            isinstance(item, str) for item in value
        )
    if kind is AttributeKind.STRING_LIST:
        return isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value)
    if kind is AttributeKind.STRING_MAP:
        return isinstance(value, Mapping) and all(
            isinstance(key, str) and isinstance(item, str) for key, item in value.items()
        )
    if kind is AttributeKind.OBJECT_SET:
        return isinstance(value, (list, tuple)) and all(
            isinstance(item, Mapping) for item in value
        )
    return False


def _positioned_members(kind: AttributeKind, value: Any) -> list[tuple[int, str]]:
    if isinstance(value, (set, frozenset)):
        return list(enumerate(sorted(value)))
    if kind is not AttributeKind.STRING_SET:
        return list(enumerate(value))
    # Duplicate set members are checked once, at their first index.
    seen: set[str] = set()
    positioned: list[tuple[int, str]] = []
    for position, member in enumerate(value):
        if member not in seen:
            seen.add(member)
            positioned.append((position, member))
    return positioned


def _item_count(kind: AttributeKind, value: Any) -> int:
    if kind is AttributeKind.STRING_SET:
        return len(set(value))
    if kind is AttributeKind.OBJECT_SET:
        return len({_freeze(item) for item in value})
    return len(value)


def _freeze(value: object) -> object:
    if isinstance(value, Mapping):
        return tuple(sorted((str(key), _freeze(item)) for key, item in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(item) for item in value)
    return value


def _normalize_value(definition: AttributeDefinition, value: object) -> object:
    if value is None:
        return None
    if definition.element_schema and isinstance(value, (list, tuple)):
        value = [_normalize_element(definition, element) for element in value]
    if definition.normalizer is None:
        return value
    return definition.normalizer(value)


def _normalize_element(definition: AttributeDefinition, element: object) -> object:
    if not isinstance(element, Mapping):
        return element
    normalized: dict[str, object] = {}
    for key, item in element.items():
        nested = definition.element(key)
        normalized[key] = item if nested is None else _normalize_value(nested, item)
    return normalized


__all__ = ["AttributeRegistry"]
