"""
cachegroup-schema: unit tests for the attribute registry

File: tests/unit/schema/test_registry.py

Purpose
- Validate complete-pass validation, normalization, defaults, diff suppression, and redaction
  over the replication group schema.

What this test file should cover
- Every violation is reported in one pass, in a deterministic order.
- Conflicts are reported once per pair, whichever side declared them.
- Nested object and collection element paths are addressable.
- Log events never carry attribute values.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from cachegroup_schema.constants import REDACTED_VALUE
from cachegroup_schema.domain.errors import SchemaValidationError, UnknownAttributeError
from cachegroup_schema.domain.models import NullableBool, ViolationKind
from cachegroup_schema.domain.snapshot import StateSnapshot
from cachegroup_schema.schema import replication_group_registry
from cachegroup_schema.upgrade import replication_group_upgrade_chain

_TOKEN = "s3cr3t-token-value-0001"
_REGISTRY = replication_group_registry()


def _log_delivery(
    *,
    destination_type: str = "cloudwatch-logs",
    destination: str = "my-log-group",
    log_type: str = "slow-log",
) -> dict[str, object]:
    return {
        "destination_type": destination_type,
        "destination": destination,
        "log_format": "json",
        "log_type": log_type,
    }


def _kinds(violations: object) -> list[tuple[str, str]]:
    return [(item.kind.value, item.attribute) for item in violations]  # type: ignore[attr-defined]


def test_minimal_config_is_valid() -> None:
    report = _REGISTRY.validate({"replication_group_id": "my-group", "description": "cache"})

    assert report.is_valid
    assert report.schema_version == 2


def test_missing_required_attribute_is_reported() -> None:
    report = _REGISTRY.validate({})

    assert _kinds(report.violations) == [("missing_required", "replication_group_id")]


def test_auth_token_and_user_groups_conflict_once() -> None:
    report = _REGISTRY.validate(
        {
            "replication_group_id": "my-group",
            "auth_token": _TOKEN,
            "user_group_ids": ["ug-1"],
        }
    )

    assert len(report.violations) == 1
    violation = report.violations[0]
    assert violation.kind is ViolationKind.CONFLICT
    assert violation.attribute == "auth_token"
    assert violation.related == "user_group_ids"
    assert _TOKEN not in violation.message


def test_global_replication_group_conflicts_are_attributed_to_first_declared() -> None:
    report = _REGISTRY.validate(
        {
            "replication_group_id": "my-group",
            "global_replication_group_id": "ldgnf-global",
            "num_node_groups": 2,
            "num_cache_clusters": 3,
            "engine": "redis",
        }
    )

    conflicts = [(item.attribute, item.related) for item in report.of_kind(ViolationKind.CONFLICT)]
    assert conflicts == [
        ("engine", "global_replication_group_id"),
        ("global_replication_group_id", "num_node_groups"),
        ("num_cache_clusters", "num_node_groups"),
    ]


def test_validation_is_complete_and_deterministically_ordered() -> None:
    config = {
        "zz_unknown": 1,
        "bogus": True,
        "maintenance_window": "sunday",
        "auth_token": _TOKEN,
        "user_group_ids": ["ug-1"],
        "arn": "arn:aws:elasticache:us-east-1:123456789012:replicationgroup:x",
        "snapshot_retention_limit": 36,
    }

    first = _REGISTRY.validate(config)
    second = _REGISTRY.validate(dict(reversed(list(config.items()))))

    assert _kinds(first.violations) == [
        ("unknown_attribute", "bogus"),
        ("unknown_attribute", "zz_unknown"),
        ("not_configurable", "arn"),
        ("validation_failure", "maintenance_window"),
        ("missing_required", "replication_group_id"),
        ("validation_failure", "snapshot_retention_limit"),
        ("conflict", "auth_token"),
    ]
    assert first == second


def test_empty_windows_are_accepted_in_config_and_upgraded_state() -> None:
    config = {"replication_group_id": "g", "maintenance_window": "", "snapshot_window": ""}

    assert _REGISTRY.validate(config).is_valid

    upgraded = replication_group_upgrade_chain().upgrade_raw(config, 1)
    assert _REGISTRY.validate_state(upgraded).is_valid


def test_strict_validation_raises_with_all_violations() -> None:
    with pytest.raises(SchemaValidationError) as excinfo:
        _REGISTRY.assert_valid({"port": "6379", "bogus": 1})

    attributes = [item.attribute for item in excinfo.value.violations]
    assert attributes == ["bogus", "port", "replication_group_id"]
    assert "- port: expected integer, got str" in str(excinfo.value)


def test_weekly_maintenance_window_accepts_mixed_case_and_normalizes() -> None:
    config = {"replication_group_id": "My-Group", "maintenance_window": "Sun:05:00-Sun:06:00"}

    assert _REGISTRY.validate(config).is_valid
    normalized = _REGISTRY.normalize(config)

    assert normalized["maintenance_window"] == "sun:05:00-sun:06:00"
    assert normalized["replication_group_id"] == "my-group"
    assert config["maintenance_window"] == "Sun:05:00-Sun:06:00"


def test_nullable_bool_attribute_accepts_wire_spellings() -> None:
    base = {"replication_group_id": "my-group"}

    assert _REGISTRY.validate({**base, "auto_minor_version_upgrade": ""}).is_valid
    assert _REGISTRY.validate({**base, "auto_minor_version_upgrade": "TRUE"}).is_valid
    assert _REGISTRY.validate({**base, "auto_minor_version_upgrade": False}).is_valid

    report = _REGISTRY.validate({**base, "auto_minor_version_upgrade": "maybe"})
    assert _kinds(report.violations) == [("validation_failure", "auto_minor_version_upgrade")]

    normalized = _REGISTRY.normalize({**base, "auto_minor_version_upgrade": "TRUE"})
    assert normalized["auto_minor_version_upgrade"] is NullableBool.TRUE


def test_log_delivery_configuration_is_capped_at_two_entries() -> None:
    entries = [
        _log_delivery(log_type="slow-log"),
        _log_delivery(log_type="engine-log"),
        _log_delivery(destination="other-group"),
    ]

    report = _REGISTRY.validate(
        {"replication_group_id": "my-group", "log_delivery_configuration": entries}
    )

    cardinality = report.of_kind(ViolationKind.CARDINALITY)
    assert len(cardinality) == 1
    assert cardinality[0].attribute == "log_delivery_configuration"
    assert cardinality[0].limit == 2
    assert cardinality[0].actual == 3


def test_duplicate_set_members_count_once() -> None:
    entries = [_log_delivery(), _log_delivery(), _log_delivery(log_type="engine-log")]

    report = _REGISTRY.validate(
        {"replication_group_id": "my-group", "log_delivery_configuration": entries}
    )

    assert report.is_valid


def test_nested_and_element_violations_carry_paths() -> None:
    bad_entry = {**_log_delivery(destination_type="s3"), "extra": "x"}
    del bad_entry["destination"]

    report = _REGISTRY.validate(
        {
            "replication_group_id": "my-group",
            "log_delivery_configuration": [bad_entry],
            "snapshot_arns": ["arn:aws:s3:::bucket/a.rdb", "arn:aws:s3:::bucket/b,c.rdb"],
        }
    )

    assert _kinds(report.violations) == [
        ("unknown_attribute", "log_delivery_configuration[0].extra"),
        ("validation_failure", "log_delivery_configuration[0].destination_type"),
        ("missing_required", "log_delivery_configuration[0].destination"),
        ("validation_failure", "snapshot_arns[1]"),
    ]


def test_string_set_element_violations_use_input_positions() -> None:
    report = _REGISTRY.validate(
        {
            "replication_group_id": "my-group",
            "snapshot_arns": ["zzz-bad", "arn:aws:s3:::bucket/x.rdb", "zzz-bad", "also-bad"],
        }
    )

    assert _kinds(report.violations) == [
        ("validation_failure", "snapshot_arns[0]"),
        ("validation_failure", "snapshot_arns[3]"),
    ]


def test_validate_state_allows_computed_values_and_skips_conflicts() -> None:
    state = StateSnapshot.from_raw(
        {
            "replication_group_id": "my-group",
            "arn": "arn:aws:elasticache:us-east-1:123456789012:replicationgroup:my-group",
            "member_clusters": ["my-group-002", "my-group-001"],
            "auth_token": _TOKEN,
            "user_group_ids": ["ug-1"],
            "auth_token_update_strategy": "ROTATE",
        }
    )

    assert _REGISTRY.validate_state(state).is_valid


def test_apply_defaults_fills_only_unset_optional_attributes() -> None:
    resolved = _REGISTRY.apply_defaults(
        {"replication_group_id": "my-group", "multi_az_enabled": True}
    )

    assert resolved["engine"] == "redis"
    assert resolved["automatic_failover_enabled"] is False
    assert resolved["multi_az_enabled"] is True
    assert resolved["auth_token_update_strategy"] == "ROTATE"
    assert "port" not in resolved


def test_defaults_do_not_create_conflicts_when_applied_after_validation() -> None:
    config = {"replication_group_id": "my-group", "global_replication_group_id": "global-1"}

    assert _REGISTRY.validate(config).is_valid
    assert _REGISTRY.apply_defaults(config)["engine"] == "redis"


def test_port_diff_suppressed_only_for_existing_resources() -> None:
    assert _REGISTRY.suppress_diff("port", 6379, "0", is_new_resource=False)
    assert not _REGISTRY.suppress_diff("port", 6379, "0", is_new_resource=True)
    assert not _REGISTRY.suppress_diff("port", 6380, "0", is_new_resource=False)
    assert not _REGISTRY.suppress_diff("node_type", "a", "b", is_new_resource=False)


def test_suppress_diff_rejects_unknown_attribute() -> None:
    with pytest.raises(UnknownAttributeError):
        _REGISTRY.suppress_diff("bogus", 1, 2, is_new_resource=False)


def test_redact_masks_sensitive_attributes_only() -> None:
    redacted = _REGISTRY.redact(
        {"replication_group_id": "my-group", "auth_token": _TOKEN, "bogus": "kept"}
    )

    assert redacted == {
        "replication_group_id": "my-group",
        "auth_token": REDACTED_VALUE,
        "bogus": "kept",
    }


def test_validation_log_event_carries_names_not_values() -> None:
    registry = replication_group_registry()

    with capture_logs() as captured:
        registry.validate({"replication_group_id": "my-group", "auth_token": "short"})

    assert len(captured) == 1
    event = captured[0]
    assert event["event"] == "schema_validation_completed"
    assert event["attributes"] == ["auth_token", "replication_group_id"]
    assert event["valid"] is False
    assert event["violation_kinds"] == ["validation_failure"]
    assert "short" not in repr(captured)
    assert "my-group" not in repr(captured)


def test_conflict_pairs_include_one_sided_declarations() -> None:
    pairs = set(_REGISTRY.conflict_pairs)

    for definition in _REGISTRY.definitions():
        for other in definition.conflicts_with:
            first, second = sorted((definition.name, other), key=_REGISTRY.schema.index_of)
            assert (first, second) in pairs


@given(pair=st.sampled_from(_REGISTRY.conflict_pairs), reverse=st.booleans())
@settings(max_examples=40, derandomize=True, deadline=None)
def test_property_conflict_reported_once_regardless_of_order(
    pair: tuple[str, str], reverse: bool
) -> None:
    names = list(reversed(pair)) if reverse else list(pair)
    config: dict[str, object] = {"replication_group_id": "my-group"}
    for name in names:
        config[name] = "value"

    conflicts = _REGISTRY.validate(config).of_kind(ViolationKind.CONFLICT)

    assert [(item.attribute, item.related) for item in conflicts] == [pair]


def test_conflict_pairs_are_unique() -> None:
    pairs = _REGISTRY.conflict_pairs
    unordered = {frozenset(pair) for pair in pairs}

    assert len(unordered) == len(pairs)
    assert all(first != second for first, second in pairs)
