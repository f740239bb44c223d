"""Replication group schema definition tests for versions 1 and 2."""

from __future__ import annotations

import pytest

from cachegroup_schema.constants import CURRENT_STATE_SCHEMA_VERSION
from cachegroup_schema.domain.errors import SchemaDefinitionError
from cachegroup_schema.domain.models import AttributeKind, Presence
from cachegroup_schema.schema import replication_group_registry, replication_group_schema


def test_version_1_declares_the_released_attribute_set() -> None:
    schema = replication_group_schema(1)

    assert schema.resource_type == "replication_group"
    assert len(schema) == 44
    assert schema.names()[:4] == (
        "apply_immediately",
        "arn",
        "at_rest_encryption_enabled",
        "auth_token",
    )
    assert "auth_token_update_strategy" not in schema


def test_version_2_adds_auth_token_update_strategy_only() -> None:
    older = replication_group_schema(1)
    current = replication_group_schema(2)

    delta = current.diff(older)

    assert len(current) == 45
    assert delta.added == ("auth_token_update_strategy",)
    assert delta.removed == ()
    assert delta.redefaulted == ()
    assert delta.retyped == ()

    strategy = current.get("auth_token_update_strategy")
    assert strategy.kind is AttributeKind.STRING
    assert strategy.presence is Presence.OPTIONAL
    assert strategy.default == "ROTATE"
    assert strategy.validators[0]("SET") is None
    assert strategy.validators[0]("REPLACE") is not None


def test_schema_versions_are_built_once_and_default_to_current() -> None:
    assert replication_group_schema() is replication_group_schema(CURRENT_STATE_SCHEMA_VERSION)
    assert replication_group_schema(1) is replication_group_schema(1)
    assert replication_group_registry(1).version == 1
    assert replication_group_registry().version == CURRENT_STATE_SCHEMA_VERSION


def test_unknown_schema_version_is_rejected() -> None:
    with pytest.raises(SchemaDefinitionError, match="known versions: 1, 2"):
        replication_group_schema(7)


@pytest.mark.parametrize(
    ("name", "presence", "immutable", "sensitive"),
    [
        ("replication_group_id", Presence.REQUIRED, True, False),
        ("auth_token", Presence.OPTIONAL, False, True),
        ("arn", Presence.COMPUTED, False, False),
        ("engine", Presence.OPTIONAL, True, False),
        ("port", Presence.OPTIONAL, True, False),
        ("member_clusters", Presence.COMPUTED, False, False),
        ("subnet_group_name", Presence.OPTIONAL_COMPUTED, True, False),
    ],
)
def test_attribute_metadata(
    name: str, presence: Presence, immutable: bool, sensitive: bool
) -> None:
    definition = replication_group_schema().get(name)

    assert definition.presence is presence
    assert definition.immutable is immutable
    assert definition.sensitive is sensitive


def test_collection_and_nested_declarations() -> None:
    schema = replication_group_schema()

    log_delivery = schema.get("log_delivery_configuration")
    assert log_delivery.kind is AttributeKind.OBJECT_SET
    assert log_delivery.max_items == 2
    assert [item.name for item in log_delivery.element_schema] == [
        "destination_type",
        "destination",
        "log_format",
        "log_type",
    ]
    assert all(item.is_required for item in log_delivery.element_schema)

    assert schema.get("preferred_cache_cluster_azs").kind is AttributeKind.STRING_LIST
    assert schema.get("tags").kind is AttributeKind.STRING_MAP
    assert schema.get("auto_minor_version_upgrade").kind is AttributeKind.NULLABLE_BOOL


def test_rendered_schema_lists_strategies() -> None:
    rendered = replication_group_schema().to_dict()
    attributes = rendered["attributes"]
    assert isinstance(attributes, list)
    by_name = {item["name"]: item for item in attributes}  # type: ignore[index]

    assert rendered["version"] == 2
    assert by_name["maintenance_window"]["normalizer"] == "lower_case"
    assert by_name["port"]["suppressor"] == "suppress_unset_default_port[6379]"
    assert by_name["auth_token"]["conflicts_with"] == ["user_group_ids"]
    assert "default" not in by_name["port"]
