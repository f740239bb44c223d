"""
Replication group attribute schema, versions 1 and 2.

Version 1 is the attribute set persisted by the first released schema.
Version 2 (current) adds ``auth_token_update_strategy``. Each version is built
once per process and is immutable afterwards; callers receive it explicitly.
"""

from __future__ import annotations

from functools import cache
from typing import TYPE_CHECKING, Any, Final

from cachegroup_schema.constants import (
    AUTH_TOKEN_UPDATE_STRATEGIES,
    AUTH_TOKEN_UPDATE_STRATEGY_ROTATE,
    CURRENT_STATE_SCHEMA_VERSION,
    DEFAULT_REDIS_PORT,
    ENGINE_REDIS,
    GLOBAL_DATASTORE_PARAMETER_GROUP_PREFIX,
    IP_DISCOVERY_VALUES,
    LOG_DESTINATION_TYPES,
    LOG_FORMATS,
    LOG_TYPES,
    MAX_LOG_DELIVERY_CONFIGURATIONS,
    MAX_SNAPSHOT_RETENTION_LIMIT,
    NETWORK_TYPE_VALUES,
    RESOURCE_TYPE,
    STATE_SCHEMA_VERSIONS,
)
from cachegroup_schema.domain.errors import SchemaDefinitionError
from cachegroup_schema.domain.models import (
    AttributeDefinition,
    AttributeKind,
    Presence,
    SchemaVersion,
)
from cachegroup_schema.schema.registry import AttributeRegistry
from cachegroup_schema.schema.strategies import (
    ONCE_A_DAY_WINDOW,
    ONCE_A_WEEK_WINDOW,
    REDIS_VERSION,
    VALID_ARN,
    AuthTokenFormat,
    CanonicalNullableBool,
    DefaultPortSuppressor,
    IntAtMost,
    LowerCase,
    NullableBoolString,
    PrefixSuppressor,
    ReplicationGroupIdFormat,
    StringDoesNotContainAny,
    StringInSet,
    StringNotEmpty,
)

if TYPE_CHECKING:
    from collections.abc import Callable

BOOL: Final = AttributeKind.BOOL
INT: Final = AttributeKind.INT
STRING: Final = AttributeKind.STRING
STRING_SET: Final = AttributeKind.STRING_SET
STRING_LIST: Final = AttributeKind.STRING_LIST
STRING_MAP: Final = AttributeKind.STRING_MAP
OBJECT_SET: Final = AttributeKind.OBJECT_SET
NULLABLE_BOOL: Final = AttributeKind.NULLABLE_BOOL

REQUIRED: Final = Presence.REQUIRED
OPTIONAL: Final = Presence.OPTIONAL
COMPUTED: Final = Presence.COMPUTED
OPTIONAL_COMPUTED: Final = Presence.OPTIONAL_COMPUTED

GLOBAL_REPLICATION_GROUP_CONFLICTS: Final[frozenset[str]] = frozenset(
    {
        "num_node_groups",
        "parameter_group_name",
        "engine",
        "engine_version",
        "node_type",
        "security_group_names",
        "transit_encryption_enabled",
        "at_rest_encryption_enabled",
        "snapshot_arns",
        "snapshot_name",
    }
)


def _log_delivery_element_schema() -> tuple[AttributeDefinition, ...]:
    return (
        AttributeDefinition(
            "destination_type",
            STRING,
            REQUIRED,
            validators=(StringInSet(LOG_DESTINATION_TYPES),),
        ),
        AttributeDefinition("destination", STRING, REQUIRED),
        AttributeDefinition(
            "log_format",
            STRING,
            REQUIRED,
            validators=(StringInSet(LOG_FORMATS),),
        ),
        AttributeDefinition(
            "log_type",
            STRING,
            REQUIRED,
            validators=(StringInSet(LOG_TYPES),),
        ),
    )


def _version_1_attributes() -> tuple[AttributeDefinition, ...]:
    return (
        AttributeDefinition("apply_immediately", BOOL, OPTIONAL_COMPUTED),
        AttributeDefinition("arn", STRING, COMPUTED),
        AttributeDefinition("at_rest_encryption_enabled", BOOL, OPTIONAL_COMPUTED, immutable=True),
        AttributeDefinition(
            "auth_token",
            STRING,
            OPTIONAL,
            sensitive=True,
            validators=(AuthTokenFormat(),),
            conflicts_with=frozenset({"user_group_ids"}),
        ),
        AttributeDefinition(
            "auto_minor_version_upgrade",
            NULLABLE_BOOL,
            OPTIONAL_COMPUTED,
            validators=(NullableBoolString(),),
            normalizer=CanonicalNullableBool(),
        ),
        AttributeDefinition("automatic_failover_enabled", BOOL, OPTIONAL, default=False),
        AttributeDefinition("cluster_enabled", BOOL, COMPUTED),
        AttributeDefinition("configuration_endpoint_address", STRING, COMPUTED),
        AttributeDefinition("data_tiering_enabled", BOOL, OPTIONAL_COMPUTED, immutable=True),
        AttributeDefinition(
            "description",
            STRING,
            OPTIONAL_COMPUTED,
            validators=(StringNotEmpty(),),
        ),
        AttributeDefinition(
            "engine",
            STRING,
            OPTIONAL,
            immutable=True,
            default=ENGINE_REDIS,
            validators=(StringInSet((ENGINE_REDIS,), ignore_case=True),),
        ),
        AttributeDefinition(
            "engine_version",
            STRING,
            OPTIONAL_COMPUTED,
            validators=(REDIS_VERSION,),
        ),
        AttributeDefinition("engine_version_actual", STRING, COMPUTED),
        AttributeDefinition(
            "global_replication_group_id",
            STRING,
            OPTIONAL_COMPUTED,
            immutable=True,
            conflicts_with=GLOBAL_REPLICATION_GROUP_CONFLICTS,
        ),
        AttributeDefinition(
            "ip_discovery",
            STRING,
            OPTIONAL_COMPUTED,
            validators=(StringInSet(IP_DISCOVERY_VALUES),),
        ),
        AttributeDefinition(
            "log_delivery_configuration",
            OBJECT_SET,
            OPTIONAL,
            max_items=MAX_LOG_DELIVERY_CONFIGURATIONS,
            element_schema=_log_delivery_element_schema(),
        ),
        AttributeDefinition(
            "maintenance_window",
            STRING,
            OPTIONAL_COMPUTED,
            validators=(ONCE_A_WEEK_WINDOW,),
            normalizer=LowerCase(),
            description="The backend always reports the window lower-cased.",
        ),
        AttributeDefinition("member_clusters", STRING_SET, COMPUTED),
        AttributeDefinition("multi_az_enabled", BOOL, OPTIONAL, default=False),
        AttributeDefinition(
            "network_type",
            STRING,
            OPTIONAL_COMPUTED,
            immutable=True,
            validators=(StringInSet(NETWORK_TYPE_VALUES),),
        ),
        AttributeDefinition("node_type", STRING, OPTIONAL_COMPUTED),
        AttributeDefinition(
            "notification_topic_arn",
            STRING,
            OPTIONAL,
            validators=(VALID_ARN,),
        ),
        AttributeDefinition(
            "num_cache_clusters",
            INT,
            OPTIONAL_COMPUTED,
            conflicts_with=frozenset({"num_node_groups"}),
        ),
        AttributeDefinition(
            "num_node_groups",
            INT,
            OPTIONAL_COMPUTED,
            conflicts_with=frozenset({"num_cache_clusters", "global_replication_group_id"}),
        ),
        AttributeDefinition(
            "parameter_group_name",
            STRING,
            OPTIONAL_COMPUTED,
            suppressor=PrefixSuppressor(GLOBAL_DATASTORE_PARAMETER_GROUP_PREFIX),
        ),
        AttributeDefinition(
            "port",
            INT,
            OPTIONAL,
            immutable=True,
            suppressor=DefaultPortSuppressor(DEFAULT_REDIS_PORT),
        ),
        AttributeDefinition("preferred_cache_cluster_azs", STRING_LIST, OPTIONAL),
        AttributeDefinition("primary_endpoint_address", STRING, COMPUTED),
        AttributeDefinition("reader_endpoint_address", STRING, COMPUTED),
        AttributeDefinition("replicas_per_node_group", INT, OPTIONAL_COMPUTED),
        AttributeDefinition(
            "replication_group_id",
            STRING,
            REQUIRED,
            immutable=True,
            validators=(ReplicationGroupIdFormat(),),
            normalizer=LowerCase(),
        ),
        AttributeDefinition("security_group_names", STRING_SET, OPTIONAL_COMPUTED, immutable=True),
        AttributeDefinition("security_group_ids", STRING_SET, OPTIONAL_COMPUTED),
        AttributeDefinition(
            "snapshot_arns",
            STRING_SET,
            OPTIONAL,
            immutable=True,
            element_validators=(VALID_ARN, StringDoesNotContainAny(",")),
        ),
        AttributeDefinition(
            "snapshot_retention_limit",
            INT,
            OPTIONAL,
            validators=(IntAtMost(MAX_SNAPSHOT_RETENTION_LIMIT),),
        ),
        AttributeDefinition(
            "snapshot_window",
            STRING,
            OPTIONAL_COMPUTED,
            validators=(ONCE_A_DAY_WINDOW,),
        ),
        AttributeDefinition("snapshot_name", STRING, OPTIONAL, immutable=True),
        AttributeDefinition("subnet_group_name", STRING, OPTIONAL_COMPUTED, immutable=True),
        AttributeDefinition("tags", STRING_MAP, OPTIONAL),
        AttributeDefinition("tags_all", STRING_MAP, OPTIONAL_COMPUTED),
        AttributeDefinition("transit_encryption_enabled", BOOL, OPTIONAL_COMPUTED, immutable=True),
        AttributeDefinition(
            "user_group_ids",
            STRING_SET,
            OPTIONAL,
            conflicts_with=frozenset({"auth_token"}),
        ),
        AttributeDefinition("kms_key_id", STRING, OPTIONAL, immutable=True),
        AttributeDefinition("final_snapshot_identifier", STRING, OPTIONAL),
    )


def _build_version_1() -> SchemaVersion:
    return SchemaVersion(resource_type=RESOURCE_TYPE, version=1, attributes=_version_1_attributes())


def _build_version_2() -> SchemaVersion:
    return replication_group_schema(1).evolve(
        2,
        add=(
            AttributeDefinition(
                "auth_token_update_strategy",
                STRING,
                OPTIONAL,
                default=AUTH_TOKEN_UPDATE_STRATEGY_ROTATE,
                validators=(StringInSet(AUTH_TOKEN_UPDATE_STRATEGIES),),
            ),
        ),
    )


_BUILDERS: Final[dict[int, Callable[[], SchemaVersion]]] = {
    1: _build_version_1,
    2: _build_version_2,
}


@cache
def replication_group_schema(version: int = CURRENT_STATE_SCHEMA_VERSION) -> SchemaVersion:
    """Return the immutable replication group schema for ``version``."""

    builder = _BUILDERS.get(version)
    if builder is None:
        known = ", ".join(str(item) for item in STATE_SCHEMA_VERSIONS)
        raise SchemaDefinitionError(
            f"unknown replication group schema version {version}; known versions: {known}"
        )
    return builder()


def replication_group_registry(
    version: int = CURRENT_STATE_SCHEMA_VERSION,
    *,
    logger: Any | None = None,
) -> AttributeRegistry:
    """Return a registry over the replication group schema for ``version``."""

    return AttributeRegistry(replication_group_schema(version), logger=logger)


__all__ = [
    "GLOBAL_REPLICATION_GROUP_CONFLICTS",
    "replication_group_registry",
    "replication_group_schema",
]
