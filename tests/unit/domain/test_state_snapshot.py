"""Typed persisted-state decoding tests: value kinds, malformed input, and immutability."""

from __future__ import annotations

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from cachegroup_schema.domain.errors import MalformedUpgradeInputError
from cachegroup_schema.domain.models import (
    AttributeDefinition,
    AttributeKind,
    Presence,
    SchemaVersion,
)
from cachegroup_schema.domain.snapshot import (
    StateSnapshot,
    StateValue,
    ValueKind,
    expected_value_kinds,
)

_KEY = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=12)
_SCALAR = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(2**40), max_value=2**40),
    st.text(max_size=16),
)
_RAW_VALUE = st.recursive(
    _SCALAR,
    lambda child: st.one_of(
        st.lists(child, max_size=4),
        st.dictionaries(_KEY, child, max_size=4),
    ),
    max_leaves=16,
)


def test_from_raw_tags_every_supported_kind() -> None:
    snapshot = StateSnapshot.from_raw(
        {
            "missing": None,
            "flag": True,
            "count": 3,
            "ratio": 0.5,
            "name": "group",
            "items": ["a", "b"],
            "members": {"b", "a"},
            "tags": {"env": "prod"},
        }
    )

    assert snapshot["missing"].kind is ValueKind.NULL
    assert snapshot["flag"].kind is ValueKind.BOOL
    assert snapshot["count"].kind is ValueKind.INT
    assert snapshot["ratio"].kind is ValueKind.NUMBER
    assert snapshot["name"].kind is ValueKind.STRING
    assert snapshot["items"].kind is ValueKind.LIST
    assert snapshot["members"].kind is ValueKind.SET
    assert snapshot["tags"].kind is ValueKind.MAP
    assert snapshot.to_raw()["members"] == ["a", "b"]


def test_none_state_decodes_to_empty_snapshot() -> None:
    snapshot = StateSnapshot.from_raw(None)

    assert len(snapshot) == 0
    assert snapshot.to_raw() == {}


@pytest.mark.parametrize(
    ("raw", "attribute"),
    [
        ({"ratio": math.nan}, "ratio"),
        ({"nested": {"deep": [1, math.inf]}}, "nested.deep[1]"),
        ({"tags": {1: "x"}}, "tags"),
        ({"blob": b"bytes"}, "blob"),
        ({3: "value"}, "<root>"),
    ],
)
def test_from_raw_rejects_malformed_values_with_path(
    raw: dict[object, object], attribute: str
) -> None:
    with pytest.raises(MalformedUpgradeInputError) as excinfo:
        StateSnapshot.from_raw(raw)  # type: ignore[arg-type]

    assert excinfo.value.attribute == attribute


def test_from_raw_rejects_non_mapping_state() -> None:
    with pytest.raises(MalformedUpgradeInputError, match="state must be a mapping"):
        StateSnapshot.from_raw(["not", "a", "mapping"])  # type: ignore[arg-type]


def test_with_value_and_without_return_new_snapshots() -> None:
    original = StateSnapshot.from_raw({"a": 1, "b": "x"})

    updated = original.with_value("c", ["y"])
    trimmed = updated.without("a")

    assert original.to_raw() == {"a": 1, "b": "x"}
    assert updated.to_raw() == {"a": 1, "b": "x", "c": ["y"]}
    assert trimmed.to_raw() == {"b": "x", "c": ["y"]}


def test_expect_returns_value_or_none_and_rejects_wrong_kind() -> None:
    snapshot = StateSnapshot.from_raw({"port": 6379, "note": None, "name": "x"})

    assert snapshot.expect("absent", {ValueKind.STRING}) is None
    assert snapshot.expect("note", {ValueKind.STRING}) == StateValue.null()
    port = snapshot.expect("port", {ValueKind.INT})
    assert port is not None
    assert port.data == 6379

    with pytest.raises(MalformedUpgradeInputError) as excinfo:
        snapshot.expect("name", {ValueKind.INT, ValueKind.NUMBER})

    assert excinfo.value.attribute == "name"
    assert excinfo.value.message == "expected int, number, got string"


def test_expected_value_kinds_follow_attribute_kinds() -> None:
    schema = SchemaVersion(
        resource_type="widget",
        version=1,
        attributes=(
            AttributeDefinition("port", AttributeKind.INT, Presence.OPTIONAL),
            AttributeDefinition("flag", AttributeKind.NULLABLE_BOOL, Presence.OPTIONAL),
            AttributeDefinition("ids", AttributeKind.STRING_SET, Presence.OPTIONAL),
            AttributeDefinition("tags", AttributeKind.STRING_MAP, Presence.OPTIONAL),
        ),
    )

    kinds = expected_value_kinds(schema)

    assert kinds["port"] == {ValueKind.INT, ValueKind.NULL}
    assert kinds["flag"] == {ValueKind.STRING, ValueKind.BOOL, ValueKind.NULL}
    assert kinds["ids"] == {ValueKind.LIST, ValueKind.SET, ValueKind.NULL}
    assert kinds["tags"] == {ValueKind.MAP, ValueKind.NULL}


@given(raw=st.dictionaries(_KEY, _RAW_VALUE, max_size=6))
@settings(max_examples=50, derandomize=True, deadline=None)
def test_property_json_compatible_state_decodes_losslessly(raw: dict[str, object]) -> None:
    snapshot = StateSnapshot.from_raw(raw)

    assert snapshot.to_raw() == raw
    assert StateSnapshot.from_raw(snapshot.to_raw()) == snapshot
