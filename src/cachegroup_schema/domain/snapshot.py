"""
Typed persisted-state values.

A persisted snapshot arrives as an untyped mapping. ``StateSnapshot.from_raw``
decodes it once into ``StateValue`` tagged unions so upgrade steps can ask for
a value of a given kind and get a typed ``MalformedUpgradeInputError`` instead
of failing somewhere downstream. Sets are persisted as sorted lists.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from cachegroup_schema.domain.errors import MalformedUpgradeInputError
from cachegroup_schema.domain.models import AttributeKind

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cachegroup_schema.domain.models import SchemaVersion

_ROOT_PATH: Final[str] = "<root>"


class ValueKind(StrEnum):
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    SET = "set"
    MAP = "map"


_KINDS_BY_ATTRIBUTE: Final[dict[AttributeKind, frozenset[ValueKind]]] = {
    AttributeKind.BOOL: frozenset({ValueKind.BOOL}),
    AttributeKind.INT: frozenset({ValueKind.INT}),
    AttributeKind.STRING: frozenset({ValueKind.STRING}),
    AttributeKind.NULLABLE_BOOL: frozenset({ValueKind.STRING, ValueKind.BOOL}),
    AttributeKind.STRING_SET: frozenset({ValueKind.LIST, ValueKind.SET}),
    AttributeKind.STRING_LIST: frozenset({ValueKind.LIST, ValueKind.SET}),
    AttributeKind.OBJECT_SET: frozenset({ValueKind.LIST, ValueKind.SET}),
    AttributeKind.STRING_MAP: frozenset({ValueKind.MAP}),
}


@dataclass(frozen=True, slots=True)
class StateValue:
    """One persisted value tagged with its kind.

    ``data`` holds ``None``/``bool``/``int``/``float``/``str`` for scalars, a
    tuple of values for lists, a frozenset of values for sets, and a tuple of
    ``(key, value)`` pairs sorted by key for maps.
    """

    kind: ValueKind
    data: object = None

    @classmethod
    def null(cls) -> StateValue:
        return cls(ValueKind.NULL, None)

    @classmethod
    def from_raw(cls, value: object, path: str = _ROOT_PATH) -> StateValue:
        if isinstance(value, StateValue):
            return value
        if value is None:
            return cls.null()
        if isinstance(value, bool):
            return cls(ValueKind.BOOL, value)
        if isinstance(value, int):
            return cls(ValueKind.INT, int(value))
        if isinstance(value, float):
            if not math.isfinite(value):
                raise MalformedUpgradeInputError(path, f"non-finite number {value!r}")
            return cls(ValueKind.NUMBER, value)
        if isinstance(value, str):
            return cls(ValueKind.STRING, str(value))
        if isinstance(value, (list, tuple)):
            return cls(
                ValueKind.LIST,
                tuple(
                    cls.from_raw(item, f"{path}[{position}]")
                    for position, item in enumerate(value)
                ),
            )
        if isinstance(value, (set, frozenset)):
            return cls(ValueKind.SET, frozenset(cls.from_raw(item, f"{path}[]") for item in value))
        if isinstance(value, Mapping):
            pairs: list[tuple[str, StateValue]] = []
            for key, item in value.items():
                if not isinstance(key, str):
                    raise MalformedUpgradeInputError(
                        path, f"map keys must be strings, got {type(key).__name__}"
                    )
                pairs.append((key, cls.from_raw(item, f"{path}.{key}")))
            return cls(ValueKind.MAP, tuple(sorted(pairs, key=lambda pair: pair[0])))
        raise MalformedUpgradeInputError(path, f"unsupported value of type {type(value).__name__}")

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def to_raw(self) -> object:
        if self.kind is ValueKind.LIST:
            return [item.to_raw() for item in self.data]  # type: ignore[attr-defined]
        if self.kind is ValueKind.SET:
            return _sorted_raw(item.to_raw() for item in self.data)  # type: ignore[attr-defined]
        if self.kind is ValueKind.MAP:
            return {key: item.to_raw() for key, item in self.data}  # type: ignore[attr-defined]
        return self.data


class StateSnapshot(Mapping[str, StateValue]):
    """Immutable attribute-name to ``StateValue`` mapping for one persisted resource."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, StateValue] | None = None) -> None:
        self._values: dict[str, StateValue] = dict(values or {})

    @classmethod
    def from_raw(cls, raw: Mapping[str, object] | None) -> StateSnapshot:
        """Decode an untyped persisted mapping; ``None`` is an empty snapshot."""

        if isinstance(raw, StateSnapshot):
            return raw
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise MalformedUpgradeInputError(
                _ROOT_PATH, f"state must be a mapping, got {type(raw).__name__}"
            )
        values: dict[str, StateValue] = {}
        for key, value in raw.items():
            if not isinstance(key, str):
                raise MalformedUpgradeInputError(
                    _ROOT_PATH, f"attribute names must be strings, got {type(key).__name__}"
                )
            values[key] = StateValue.from_raw(value, key)
        return cls(values)

    def __getitem__(self, name: str) -> StateValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"StateSnapshot({self.to_raw()!r})"

    def to_raw(self) -> dict[str, object]:
        return {name: value.to_raw() for name, value in self._values.items()}

    def with_value(self, name: str, value: StateValue | object) -> StateSnapshot:
        values = dict(self._values)
        values[name] = StateValue.from_raw(value, name)
        return StateSnapshot(values)

    def without(self, *names: str) -> StateSnapshot:
        dropped = frozenset(names)
        return StateSnapshot(
            {key: value for key, value in self._values.items() if key not in dropped}
        )

    def expect(self, name: str, kinds: Iterable[ValueKind]) -> StateValue | None:
        """Return the value for ``name`` or ``None`` when absent; reject a wrong kind."""

        value = self._values.get(name)
        if value is None or value.is_null:
            return value
        accepted = frozenset(kinds)
        if value.kind not in accepted:
            expected = ", ".join(sorted(item.value for item in accepted))
            raise MalformedUpgradeInputError(
                name, f"expected {expected}, got {value.kind.value}"
            )
        return value


def expected_value_kinds(schema: SchemaVersion) -> dict[str, frozenset[ValueKind]]:
    """Map each attribute of ``schema`` to the persisted kinds it may hold."""

    return {
        definition.name: _KINDS_BY_ATTRIBUTE[definition.kind] | {ValueKind.NULL}
        for definition in schema
    }


def _sorted_raw(members: Iterable[object]) -> list[object]:
    items = list(members)
    if all(isinstance(item, str) for item in items):
        return sorted(items)  # type: ignore[type-var]
    return sorted(items, key=lambda item: (type(item).__name__, repr(item)))


__all__ = [
    "StateSnapshot",
    "StateValue",
    "ValueKind",
    "expected_value_kinds",
]
