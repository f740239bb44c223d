"""Replication group state upgrade steps."""

from __future__ import annotations

from typing import Any

from cachegroup_schema.constants import AUTH_TOKEN_UPDATE_STRATEGY_ROTATE
from cachegroup_schema.domain.snapshot import StateSnapshot, expected_value_kinds
from cachegroup_schema.schema.replication_group import replication_group_schema
from cachegroup_schema.upgrade.chain import UpgradeChain, UpgradeStep

AUTH_TOKEN_UPDATE_STRATEGY = "auth_token_update_strategy"


def upgrade_version_1_to_2(state: StateSnapshot) -> StateSnapshot:
    """Move every existing group onto token rotation.

    The strategy is always overwritten with ``ROTATE``, even when the
    snapshot already carries a value.
    """

    return state.with_value(AUTH_TOKEN_UPDATE_STRATEGY, AUTH_TOKEN_UPDATE_STRATEGY_ROTATE)


def replication_group_upgrade_steps() -> tuple[UpgradeStep, ...]:
    return (
        UpgradeStep(
            from_version=1,
            transform=upgrade_version_1_to_2,
            description=f"set {AUTH_TOKEN_UPDATE_STRATEGY} to {AUTH_TOKEN_UPDATE_STRATEGY_ROTATE}",
            expected_kinds=expected_value_kinds(replication_group_schema(1)),
        ),
    )


def replication_group_upgrade_chain(*, logger: Any | None = None) -> UpgradeChain:
    return UpgradeChain(replication_group_upgrade_steps(), logger=logger)


__all__ = [
    "AUTH_TOKEN_UPDATE_STRATEGY",
    "replication_group_upgrade_chain",
    "replication_group_upgrade_steps",
    "upgrade_version_1_to_2",
]
