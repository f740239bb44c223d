"""Stable constants shared across the schema registry and upgrade chain."""

from __future__ import annotations

from typing import Final

RESOURCE_TYPE: Final[str] = "replication_group"

# Schema versions for persisted replication group state.
MIN_STATE_SCHEMA_VERSION: Final[int] = 1
CURRENT_STATE_SCHEMA_VERSION: Final[int] = 2
STATE_SCHEMA_VERSIONS: Final[tuple[int, ...]] = (1, 2)

# Schema version of the engine's own config file.
CONFIG_SCHEMA_VERSION: Final[int] = 1
CONFIG_FILE_NAME: Final[str] = "cachegroup.toml"
ENV_PREFIX: Final[str] = "CACHEGROUP_"

ENGINE_REDIS: Final[str] = "redis"
DEFAULT_REDIS_PORT: Final[int] = 6379
GLOBAL_DATASTORE_PARAMETER_GROUP_PREFIX: Final[str] = "global-datastore-"

AUTH_TOKEN_UPDATE_STRATEGY_SET: Final[str] = "SET"
AUTH_TOKEN_UPDATE_STRATEGY_ROTATE: Final[str] = "ROTATE"
AUTH_TOKEN_UPDATE_STRATEGY_DELETE: Final[str] = "DELETE"
AUTH_TOKEN_UPDATE_STRATEGIES: Final[tuple[str, ...]] = (
    AUTH_TOKEN_UPDATE_STRATEGY_SET,
    AUTH_TOKEN_UPDATE_STRATEGY_ROTATE,
    AUTH_TOKEN_UPDATE_STRATEGY_DELETE,
)

IP_DISCOVERY_VALUES: Final[tuple[str, ...]] = ("ipv4", "ipv6")
NETWORK_TYPE_VALUES: Final[tuple[str, ...]] = ("ipv4", "ipv6", "dual_stack")
LOG_DESTINATION_TYPES: Final[tuple[str, ...]] = ("cloudwatch-logs", "kinesis-firehose")
LOG_FORMATS: Final[tuple[str, ...]] = ("text", "json")
LOG_TYPES: Final[tuple[str, ...]] = ("slow-log", "engine-log")

MAX_LOG_DELIVERY_CONFIGURATIONS: Final[int] = 2
MAX_SNAPSHOT_RETENTION_LIMIT: Final[int] = 35

REDACTED_VALUE: Final[str] = "***REDACTED***"

__all__ = [
    "AUTH_TOKEN_UPDATE_STRATEGIES",
    "AUTH_TOKEN_UPDATE_STRATEGY_DELETE",
    "AUTH_TOKEN_UPDATE_STRATEGY_ROTATE",
    "AUTH_TOKEN_UPDATE_STRATEGY_SET",
    "CONFIG_FILE_NAME",
    "CONFIG_SCHEMA_VERSION",
    "CURRENT_STATE_SCHEMA_VERSION",
    "DEFAULT_REDIS_PORT",
    "ENGINE_REDIS",
    "ENV_PREFIX",
    "GLOBAL_DATASTORE_PARAMETER_GROUP_PREFIX",
    "IP_DISCOVERY_VALUES",
    "LOG_DESTINATION_TYPES",
    "LOG_FORMATS",
    "LOG_TYPES",
    "MAX_LOG_DELIVERY_CONFIGURATIONS",
    "MAX_SNAPSHOT_RETENTION_LIMIT",
    "MIN_STATE_SCHEMA_VERSION",
    "NETWORK_TYPE_VALUES",
    "REDACTED_VALUE",
    "RESOURCE_TYPE",
    "STATE_SCHEMA_VERSIONS",
]
