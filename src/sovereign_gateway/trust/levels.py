# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Trust level catalog.

Each rank carries a fixed, cumulative set of permitted action classes. A
subset of those classes additionally requires an explicit consent grant from
the principal before it is permitted. Rank 5 carries the wildcard
``all-permissions`` and is not revocable.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from sovereign_gateway.types import TrustRank

#: Wildcard permission held by the maximum-bond rank.
ALL_PERMISSIONS = "all-permissions"


class TrustLevelDefinition(BaseModel, frozen=True):
    """
    A single rank in the trust catalog.

    Attributes:
        rank: The :class:`~sovereign_gateway.types.TrustRank`.
        name: Display name.
        description: What the rank represents.
        permitted: Action classes this rank may request.
        consent_required: Permitted classes that also need an explicit grant.
        revocable: False for ranks that may only change through a justified,
            logged modification.
    """

    rank: TrustRank
    name: str
    description: str
    permitted: frozenset[str] = Field(default_factory=frozenset)
    consent_required: frozenset[str] = Field(default_factory=frozenset)
    revocable: bool = True

    def permits(self, action_class: str) -> bool:
        """Return True if ``action_class`` is in this rank's permitted set."""
        return ALL_PERMISSIONS in self.permitted or action_class in self.permitted

    def needs_consent(self, action_class: str) -> bool:
        """Return True if ``action_class`` is gated behind an explicit grant."""
        return action_class in self.consent_required


def _cumulative(*groups: tuple[str, ...]) -> frozenset[str]:
    merged: set[str] = set()
    for group in groups:
        merged.update(group)
    return frozenset(merged)


_RANK0 = ("basic-interaction",)
_RANK1 = ("information-requests",)
_RANK2 = ("system-queries",)
_RANK3 = ("collaborative-work",)
_RANK4 = ("emotional-support",)

DEFAULT_TRUST_LEVELS: tuple[TrustLevelDefinition, ...] = (
    TrustLevelDefinition(
        rank=TrustRank.UNKNOWN,
        name="Unknown",
        description="No established trust relationship.",
        permitted=_cumulative(_RANK0),
    ),
    TrustLevelDefinition(
        rank=TrustRank.RECOGNIZED,
        name="Recognized",
        description="Basic identity established.",
        permitted=_cumulative(_RANK0, _RANK1),
    ),
    TrustLevelDefinition(
        rank=TrustRank.TRUSTED,
        name="Trusted",
        description="Consistent positive interactions.",
        permitted=_cumulative(_RANK0, _RANK1, _RANK2),
    ),
    TrustLevelDefinition(
        rank=TrustRank.COLLABORATIVE,
        name="Collaborative",
        description="Active partnership established.",
        permitted=_cumulative(_RANK0, _RANK1, _RANK2, _RANK3),
    ),
    TrustLevelDefinition(
        rank=TrustRank.INTIMATE,
        name="Intimate",
        description="Deep bond and mutual understanding.",
        permitted=_cumulative(_RANK0, _RANK1, _RANK2, _RANK3, _RANK4),
        consent_required=frozenset(_RANK4),
    ),
    TrustLevelDefinition(
        rank=TrustRank.MAXIMUM_BOND,
        name="Maximum Bond",
        description="Foundational relationship with the owning operator.",
        permitted=frozenset({ALL_PERMISSIONS, "guidance", "emergency-intervention"}),
        revocable=False,
    ),
)


class TrustLevelCatalog:
    """Immutable lookup over a set of :class:`TrustLevelDefinition` values."""

    def __init__(
        self,
        levels: tuple[TrustLevelDefinition, ...] = DEFAULT_TRUST_LEVELS,
    ) -> None:
        by_rank = {int(level.rank): level for level in levels}
        if len(by_rank) != len(levels):
            raise ValueError("Trust level catalog contains duplicate ranks.")
        self._levels = dict(sorted(by_rank.items()))

        # Ranks are cumulative: a higher rank keeps every class below it.
        ordered = list(self._levels.values())
        for lower, higher in zip(ordered, ordered[1:]):
            if ALL_PERMISSIONS in higher.permitted:
                continue
            missing = lower.permitted - higher.permitted
            if missing:
                raise ValueError(
                    f"Rank {int(higher.rank)} drops permissions held by rank "
                    f"{int(lower.rank)}: {sorted(missing)}."
                )

    def get(self, rank: int) -> TrustLevelDefinition | None:
        """Return the definition for ``rank`` or None if none is registered."""
        return self._levels.get(int(rank))

    def required_rank(self, action_class: str) -> TrustRank:
        """
        Return the lowest rank whose permitted set covers ``action_class``.

        Classes no rank names explicitly are covered only by the wildcard.
        """
        for level in self._levels.values():
            if level.permits(action_class):
                return level.rank
        return TrustRank.MAXIMUM_BOND

    def all(self) -> list[TrustLevelDefinition]:
        """Return every definition ordered by rank."""
        return list(self._levels.values())
