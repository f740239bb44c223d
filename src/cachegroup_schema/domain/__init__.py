"""Domain models for attribute schemas, persisted state, and engine errors."""

from cachegroup_schema.domain.errors import (
    CacheGroupSchemaError,
    MalformedUpgradeInputError,
    MissingUpgradeStepError,
    SchemaDefinitionError,
    SchemaValidationError,
    UnknownAttributeError,
    UnsupportedDowngradeError,
    UpgradeContractError,
)
from cachegroup_schema.domain.models import (
    AttributeDefinition,
    AttributeKind,
    NullableBool,
    Presence,
    SchemaDelta,
    SchemaVersion,
    SchemaViolation,
    ValidationReport,
    ViolationKind,
)
from cachegroup_schema.domain.snapshot import (
    StateSnapshot,
    StateValue,
    ValueKind,
    expected_value_kinds,
)

__all__ = [
    "AttributeDefinition",
    "AttributeKind",
    "CacheGroupSchemaError",
    "MalformedUpgradeInputError",
    "MissingUpgradeStepError",
    "NullableBool",
    "Presence",
    "SchemaDefinitionError",
    "SchemaDelta",
    "SchemaValidationError",
    "SchemaVersion",
    "SchemaViolation",
    "StateSnapshot",
    "StateValue",
    "UnknownAttributeError",
    "UnsupportedDowngradeError",
    "UpgradeContractError",
    "ValidationReport",
    "ValueKind",
    "ViolationKind",
    "expected_value_kinds",
]
