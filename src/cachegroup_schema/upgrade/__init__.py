"""State upgrade chain and the replication group upgrade steps."""

from cachegroup_schema.upgrade.chain import UpgradeChain, UpgradeStep
from cachegroup_schema.upgrade.replication_group import (
    replication_group_upgrade_chain,
    upgrade_version_1_to_2,
)

__all__ = [
    "UpgradeChain",
    "UpgradeStep",
    "replication_group_upgrade_chain",
    "upgrade_version_1_to_2",
]
