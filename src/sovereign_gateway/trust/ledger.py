# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal, Mapping

from pydantic import BaseModel, Field

from sovereign_gateway.config import TrustConfig
from sovereign_gateway.errors import (
    ConfigurationError,
    TrustModificationError,
    UnknownPrincipalError,
)
from sovereign_gateway.trust.levels import TrustLevelCatalog
from sovereign_gateway.trust.validator import PermissionCheckResult, evaluate_permission
from sovereign_gateway.types import Clock, PrincipalKind, TrustRank, utc_now

logger = logging.getLogger("sovereign.gateway.trust")

InteractionAction = Literal[
    "trust-established",
    "trust-level-change",
    "consent-given",
    "consent-revoked",
]


class TrustInteraction(BaseModel, frozen=True):
    """
    One entry in a principal's trust history.

    Attributes:
        timestamp: UTC time of the interaction.
        action: What happened.
        old_rank: Rank before the interaction.
        new_rank: Rank after the interaction.
        action_class: The action class concerned, for consent interactions.
        reason: Justification supplied by the caller.
    """

    timestamp: datetime
    action: InteractionAction
    old_rank: int
    new_rank: int
    action_class: str | None = None
    reason: str = ""


class TrustRecord(BaseModel, frozen=True):
    """
    Immutable snapshot of a principal's trust state.

    Attributes:
        principal_id: Stable identifier.
        kind: The :class:`~sovereign_gateway.types.PrincipalKind`.
        rank: Current :class:`~sovereign_gateway.types.TrustRank`.
        granted: Action classes explicitly consented to.
        revoked: Action classes explicitly revoked.
        established_at: When the record was created.
        last_interaction: Time of the most recent interaction.
        history: Every interaction, oldest first.
    """

    principal_id: str
    kind: PrincipalKind
    rank: TrustRank
    granted: frozenset[str] = Field(default_factory=frozenset)
    revoked: frozenset[str] = Field(default_factory=frozenset)
    established_at: datetime
    last_interaction: datetime
    history: tuple[TrustInteraction, ...] = ()


class TrustSummary(BaseModel, frozen=True):
    """Compact per-principal view used by status dashboards."""

    principal_id: str
    kind: PrincipalKind
    rank: TrustRank
    rank_label: str
    granted: list[str]
    revoked: list[str]
    interactions: int


class _PrincipalEntry:
    """Internal mutable storage for a single principal."""

    __slots__ = (
        "principal_id",
        "kind",
        "rank",
        "granted",
        "revoked",
        "established_at",
        "last_interaction",
        "history",
    )

    def __init__(
        self,
        principal_id: str,
        kind: PrincipalKind,
        rank: TrustRank,
        now: datetime,
    ) -> None:
        self.principal_id = principal_id
        self.kind = kind
        self.rank = rank
        self.granted: set[str] = set()
        self.revoked: set[str] = set()
        self.established_at = now
        self.last_interaction = now
        self.history: list[TrustInteraction] = []

    def snapshot(self) -> TrustRecord:
        return TrustRecord(
            principal_id=self.principal_id,
            kind=self.kind,
            rank=self.rank,
            granted=frozenset(self.granted),
            revoked=frozenset(self.revoked),
            established_at=self.established_at,
            last_interaction=self.last_interaction,
            history=tuple(self.history),
        )


class TrustLedger:
    """
    Tracks per-principal trust rank and consent state.

    Ranks change ONLY through :meth:`modify_trust_level`, which always
    appends an interaction record before mutating. Records are never
    deleted. Every lookup on an unknown principal fails closed.

    Example::

        ledger = TrustLedger(TrustConfig(privileged_principal_id="owner"))
        ledger.establish_trust("owner", PrincipalKind.OWNER)
        ledger.establish_trust("peer-7", PrincipalKind.PEER_AGENT)
        assert ledger.request_permission("peer-7", "basic-interaction") is True
        assert ledger.request_permission("ghost", "basic-interaction") is False
    """

    def __init__(
        self,
        config: TrustConfig | None = None,
        catalog: TrustLevelCatalog | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or TrustConfig()
        self._catalog = catalog or TrustLevelCatalog()
        self._clock = clock or utc_now
        self._entries: dict[str, _PrincipalEntry] = {}

    @property
    def catalog(self) -> TrustLevelCatalog:
        return self._catalog

    @property
    def privileged_principal_id(self) -> str:
        return self._config.privileged_principal_id

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def bootstrap(self, directory: Mapping[str, PrincipalKind | str]) -> list[TrustRecord]:
        """
        Establish every principal in a directory, then the privileged owner.

        Args:
            directory: Mapping of principal id to kind, supplied by the host.

        Returns:
            The trust records for every principal now known, in insertion order.
        """
        for principal_id, kind in directory.items():
            self.establish_trust(principal_id, PrincipalKind(kind))
        if self._config.privileged_principal_id not in self._entries:
            self.establish_trust(self._config.privileged_principal_id, PrincipalKind.OWNER)
        return [entry.snapshot() for entry in self._entries.values()]

    def establish_trust(self, principal_id: str, kind: PrincipalKind | str) -> TrustRecord:
        """
        Create a trust record for a principal.

        The owner starts at :attr:`~TrustRank.MAXIMUM_BOND`; every other kind
        starts at :attr:`~TrustRank.UNKNOWN`. Re-establishing an existing
        principal is a no-op that returns the existing record.

        Raises:
            ValueError: If ``principal_id`` is empty.
            ConfigurationError: If an owner is established under an id other
                than the configured privileged principal.
        """
        if not principal_id:
            raise ValueError("principal_id must be a non-empty string.")

        existing = self._entries.get(principal_id)
        if existing is not None:
            return existing.snapshot()

        kind = PrincipalKind(kind)
        if kind is PrincipalKind.OWNER and principal_id != self._config.privileged_principal_id:
            raise ConfigurationError(
                f"Only '{self._config.privileged_principal_id}' may be established "
                f"as {PrincipalKind.OWNER.value}; got '{principal_id}'."
            )

        rank = TrustRank.MAXIMUM_BOND if kind is PrincipalKind.OWNER else TrustRank.UNKNOWN
        now = self._clock()
        entry = _PrincipalEntry(principal_id, kind, rank, now)
        entry.history.append(
            TrustInteraction(
                timestamp=now,
                action="trust-established",
                old_rank=int(rank),
                new_rank=int(rank),
                reason=f"Established as {kind.value}",
            )
        )
        self._entries[principal_id] = entry
        logger.info(
            "trust_established",
            extra={"principal_id": principal_id, "kind": kind.value, "rank": int(rank)},
        )
        return entry.snapshot()

    def check_permission(self, principal_id: str, action_class: str) -> PermissionCheckResult:
        """
        Evaluate whether a principal may request an action class.

        Does NOT raise for unknown principals; the result is a denial.
        """
        required = int(self._catalog.required_rank(action_class))
        entry = self._entries.get(principal_id)
        if entry is None:
            return evaluate_permission(
                principal_id, action_class, None, required, frozenset(), frozenset()
            )
        return evaluate_permission(
            principal_id=principal_id,
            action_class=action_class,
            level=self._catalog.get(entry.rank),
            trust_required=required,
            granted=frozenset(entry.granted),
            revoked=frozenset(entry.revoked),
        )

    def request_permission(self, principal_id: str, action_class: str) -> bool:
        """Return True iff ``principal_id`` may request ``action_class``."""
        return self.check_permission(principal_id, action_class).allowed

    def modify_trust_level(
        self,
        principal_id: str,
        new_rank: int,
        reason: str,
    ) -> TrustRecord:
        """
        Change a principal's rank through an explicit, logged operation.

        The interaction is appended before the rank is mutated. Leaving a
        non-revocable rank requires a non-blank reason.

        Raises:
            UnknownPrincipalError: If the principal has no record.
            TrustModificationError: If ``new_rank`` is out of range or the
                change away from a non-revocable rank is unjustified.
        """
        entry = self._require(principal_id)
        try:
            target = TrustRank(new_rank)
        except ValueError:
            raise TrustModificationError(
                principal_id, f"rank {new_rank!r} is outside 0..5."
            ) from None

        current_level = self._catalog.get(entry.rank)
        if current_level is not None and not current_level.revocable and not reason.strip():
            raise TrustModificationError(
                principal_id,
                f"rank {current_level.name} is non-revocable; a justification is required.",
            )

        old_rank = entry.rank
        now = self._clock()
        entry.history.append(
            TrustInteraction(
                timestamp=now,
                action="trust-level-change",
                old_rank=int(old_rank),
                new_rank=int(target),
                reason=reason,
            )
        )
        entry.rank = target
        entry.last_interaction = now
        logger.info(
            "trust_level_modified",
            extra={
                "principal_id": principal_id,
                "old_rank": int(old_rank),
                "new_rank": int(target),
                "reason": reason,
            },
        )
        return entry.snapshot()

    def give_consent(self, principal_id: str, action_class: str) -> TrustRecord:
        """
        Record explicit consent for an action class.

        Moves the class out of the revoked set and into the granted set.

        Raises:
            UnknownPrincipalError: If the principal has no record.
        """
        return self._move_consent(principal_id, action_class, grant=True)

    def revoke_consent(self, principal_id: str, action_class: str) -> TrustRecord:
        """
        Revoke consent for an action class.

        Moves the class out of the granted set and into the revoked set.
        A revoked class is denied at every rank until consent is given again.

        Raises:
            UnknownPrincipalError: If the principal has no record.
        """
        return self._move_consent(principal_id, action_class, grant=False)

    def get_record(self, principal_id: str) -> TrustRecord | None:
        """Return the principal's trust record, or None if unknown."""
        entry = self._entries.get(principal_id)
        return entry.snapshot() if entry is not None else None

    def rank_of(self, principal_id: str) -> TrustRank | None:
        """Return the principal's current rank, or None if unknown."""
        entry = self._entries.get(principal_id)
        return entry.rank if entry is not None else None

    def required_rank(self, action_class: str) -> TrustRank:
        """Return the lowest rank that permits ``action_class``."""
        return self._catalog.required_rank(action_class)

    def history(self, principal_id: str) -> list[TrustInteraction]:
        """Return the principal's interactions, oldest first. Empty if unknown."""
        entry = self._entries.get(principal_id)
        return list(entry.history) if entry is not None else []

    def list_principals(self) -> list[str]:
        """Return every known principal id in insertion order."""
        return list(self._entries)

    def summaries(self) -> list[TrustSummary]:
        """Return a :class:`TrustSummary` for every known principal."""
        return [
            TrustSummary(
                principal_id=entry.principal_id,
                kind=entry.kind,
                rank=entry.rank,
                rank_label=entry.rank.label(),
                granted=sorted(entry.granted),
                revoked=sorted(entry.revoked),
                interactions=len(entry.history),
            )
            for entry in self._entries.values()
        ]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require(self, principal_id: str) -> _PrincipalEntry:
        entry = self._entries.get(principal_id)
        if entry is None:
            raise UnknownPrincipalError(principal_id)
        return entry

    def _move_consent(self, principal_id: str, action_class: str, grant: bool) -> TrustRecord:
        if not action_class:
            raise ValueError("action_class must be a non-empty string.")
        entry = self._require(principal_id)
        now = self._clock()
        if grant:
            entry.revoked.discard(action_class)
            entry.granted.add(action_class)
        else:
            entry.granted.discard(action_class)
            entry.revoked.add(action_class)
        entry.history.append(
            TrustInteraction(
                timestamp=now,
                action="consent-given" if grant else "consent-revoked",
                old_rank=int(entry.rank),
                new_rank=int(entry.rank),
                action_class=action_class,
                reason="Explicit consent provided" if grant else "Consent explicitly revoked",
            )
        )
        entry.last_interaction = now
        logger.info(
            "consent_given" if grant else "consent_revoked",
            extra={"principal_id": principal_id, "action_class": action_class},
        )
        return entry.snapshot()
