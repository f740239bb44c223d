"""
cachegroup-schema config package public API.

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``cachegroup.toml`` + ``CACHEGROUP_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from cachegroup_schema.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    env_overrides,
    env_var_name,
    load_config,
    resolve_log_dir,
)
from cachegroup_schema.config.schema import (
    DEFAULT_CONFIG,
    CacheGroupConfig,
    ConfigSchemaVersion,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    redact_config,
    validate_config,
)

__all__ = [
    "CacheGroupConfig",
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "env_overrides",
    "env_var_name",
    "load_config",
    "merge_config",
    "migration_guidance",
    "redact_config",
    "resolve_log_dir",
    "validate_config",
]
