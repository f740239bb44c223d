"""
Ordered state upgrade chain.

Each ``UpgradeStep`` moves a snapshot exactly one schema version forward.
``UpgradeChain.upgrade`` applies steps in strict order, feeding the output of
one step as the sole input of the next, and fails fast on the first error.
Downgrades are rejected, never ignored.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from cachegroup_schema.domain.errors import (
    MissingUpgradeStepError,
    SchemaDefinitionError,
    UnsupportedDowngradeError,
    UpgradeContractError,
)
from cachegroup_schema.domain.snapshot import StateSnapshot, ValueKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

StateTransform = Callable[[StateSnapshot], StateSnapshot]


@dataclass(frozen=True, slots=True)
class UpgradeStep:
    """Pure transform from ``from_version`` to ``from_version + 1``."""

    from_version: int
    transform: StateTransform
    description: str = ""
    expected_kinds: Mapping[str, frozenset[ValueKind]] = field(default_factory=dict, compare=False)
    removes: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if isinstance(self.from_version, bool) or not isinstance(self.from_version, int):
            raise SchemaDefinitionError("upgrade step from_version must be an integer")
        if self.from_version < 0:
            raise SchemaDefinitionError("upgrade step from_version must be >= 0")
        object.__setattr__(self, "expected_kinds", dict(self.expected_kinds))
        object.__setattr__(self, "removes", frozenset(self.removes))

    @property
    def to_version(self) -> int:
        return self.from_version + 1


class UpgradeChain:
    """Contiguous sequence of upgrade steps for one resource type."""

    def __init__(self, steps: Iterable[UpgradeStep], *, logger: Any | None = None) -> None:
        ordered = tuple(sorted(steps, key=lambda step: step.from_version))
        if not ordered:
            raise SchemaDefinitionError("upgrade chain requires at least one step")
        for previous, step in zip(ordered, ordered[1:]):
            if step.from_version != previous.to_version:
                raise SchemaDefinitionError(
                    "upgrade steps must be contiguous: "
                    f"step from version {previous.from_version} is followed by "
                    f"step from version {step.from_version}"
                )
        self._steps = {step.from_version: step for step in ordered}
        self._min_version = ordered[0].from_version
        self._current_version = ordered[-1].to_version
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def min_version(self) -> int:
        return self._min_version

    @property
    def current_version(self) -> int:
        return self._current_version

    @property
    def steps(self) -> Sequence[UpgradeStep]:
        return tuple(self._steps.values())

    def step_for(self, from_version: int) -> UpgradeStep:
        step = self._steps.get(from_version)
        if step is None:
            raise MissingUpgradeStepError(from_version)
        return step

    def upgrade(
        self,
        snapshot: StateSnapshot | Mapping[str, object] | None,
        from_version: int,
        to_version: int | None = None,
    ) -> StateSnapshot:
        """Bring ``snapshot`` from ``from_version`` to ``to_version`` (default: current)."""

        target = self._current_version if to_version is None else to_version
        if from_version > target:
            raise UnsupportedDowngradeError(from_version, target)

        state = StateSnapshot.from_raw(snapshot)
        if from_version == target:
            return state

        for version in range(from_version, target):
            step = self.step_for(version)
            state = self._apply(step, state)

        self._logger.info(
            "state_upgrade_completed",
            from_version=from_version,
            to_version=target,
            steps=target - from_version,
            key_count=len(state),
        )
        return state

    def upgrade_raw(
        self,
        raw: Mapping[str, object] | None,
        from_version: int,
        to_version: int | None = None,
    ) -> dict[str, object]:
        """Upgrade an untyped mapping and return its persisted form.

        Sets come back as sorted lists and tuples as lists, so the identity law
        holds on ``StateSnapshot`` values rather than on the raw containers.
        """

        return self.upgrade(StateSnapshot.from_raw(raw), from_version, to_version).to_raw()

    def _apply(self, step: UpgradeStep, state: StateSnapshot) -> StateSnapshot:
        for name, kinds in step.expected_kinds.items():
            state.expect(name, kinds)

        result = step.transform(state)
        if not isinstance(result, StateSnapshot):
            raise UpgradeContractError(
                f"upgrade step {step.from_version} -> {step.to_version} returned "
                f"{type(result).__name__}, expected StateSnapshot"
            )
        dropped = sorted(name for name in state if name not in result and name not in step.removes)
        if dropped:
            raise UpgradeContractError(
                f"upgrade step {step.from_version} -> {step.to_version} dropped "
                f"undeclared attributes: {', '.join(dropped)}"
            )

        self._logger.info(
            "state_upgrade_step_applied",
            from_version=step.from_version,
            to_version=step.to_version,
            description=step.description,
            input_keys=len(state),
            output_keys=len(result),
        )
        return result


__all__ = ["StateTransform", "UpgradeChain", "UpgradeStep"]
