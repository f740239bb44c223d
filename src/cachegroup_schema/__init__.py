"""
cachegroup-schema: versioned attribute schema and state upgrades for replication groups.

The package root stays import-light: no config loading and no logging setup
happen at import time. Import from the subpackages:

- ``cachegroup_schema.domain``: schema models, persisted-state values, errors.
- ``cachegroup_schema.schema``: strategies, the registry, replication group schemas.
- ``cachegroup_schema.upgrade``: the upgrade chain and replication group steps.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
