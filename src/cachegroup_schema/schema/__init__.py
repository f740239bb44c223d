"""Attribute registry and the replication group schema versions."""

from cachegroup_schema.schema.registry import AttributeRegistry
from cachegroup_schema.schema.replication_group import (
    replication_group_registry,
    replication_group_schema,
)

__all__ = [
    "AttributeRegistry",
    "replication_group_registry",
    "replication_group_schema",
]
