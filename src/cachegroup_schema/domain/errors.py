"""Error taxonomy for schema definition, config validation, and state upgrades."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cachegroup_schema.domain.models import SchemaViolation


class CacheGroupSchemaError(Exception):
    """Base class for all engine errors."""


class SchemaDefinitionError(CacheGroupSchemaError, ValueError):
    """Raised when a schema version or upgrade chain is declared inconsistently."""


class UnknownAttributeError(CacheGroupSchemaError, LookupError):
    """Raised when an attribute name is not part of the schema version."""

    def __init__(self, name: str, *, schema_version: int) -> None:
        self.name = name
        self.schema_version = schema_version
        super().__init__(f"unknown attribute {name!r} in schema version {schema_version}")


class SchemaValidationError(CacheGroupSchemaError, ValueError):
    """Raised by strict validation when a config carries one or more violations."""

    def __init__(self, violations: Sequence[SchemaViolation]) -> None:
        self.violations = tuple(violations)
        if not self.violations:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.attribute}: {item.message}" for item in self.violations)
        super().__init__(f"invalid configuration:\n{rendered}")


class UnsupportedDowngradeError(CacheGroupSchemaError):
    """Raised when an upgrade is requested from a newer to an older version."""

    def __init__(self, from_version: int, to_version: int) -> None:
        self.from_version = from_version
        self.to_version = to_version
        super().__init__(
            f"cannot downgrade state from schema version {from_version} to {to_version}"
        )


class MissingUpgradeStepError(CacheGroupSchemaError):
    """Raised when the chain has no step for a version boundary."""

    def __init__(self, from_version: int) -> None:
        self.from_version = from_version
        super().__init__(
            f"no upgrade step from schema version {from_version} to {from_version + 1}"
        )


class MalformedUpgradeInputError(CacheGroupSchemaError, ValueError):
    """Raised when persisted state holds a value of the wrong kind for a key."""

    def __init__(self, attribute: str, message: str) -> None:
        self.attribute = attribute
        self.message = message
        super().__init__(f"{attribute}: {message}")


class UpgradeContractError(CacheGroupSchemaError):
    """Raised when an upgrade step drops a key it did not declare as removed."""


__all__ = [
    "CacheGroupSchemaError",
    "MalformedUpgradeInputError",
    "MissingUpgradeStepError",
    "SchemaDefinitionError",
    "SchemaValidationError",
    "UnknownAttributeError",
    "UnsupportedDowngradeError",
    "UpgradeContractError",
]
