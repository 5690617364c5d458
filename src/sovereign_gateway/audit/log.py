# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Iterable

from sovereign_gateway.audit.chain import GENESIS_HASH, link, verify_chain
from sovereign_gateway.audit.health import AuditHealthSnapshot, compute_health
from sovereign_gateway.audit.query import DecisionFilter, DecisionQueryResult, apply_filter
from sovereign_gateway.audit.record import (
    AuditEntry,
    AuditRecord,
    Decision,
    LockoutRecord,
    ModeTransition,
)
from sovereign_gateway.audit.review import ReviewReport, build_review
from sovereign_gateway.audit.status import status_for
from sovereign_gateway.config import AuditConfig
from sovereign_gateway.errors import ConfigurationError, DecisionNotFoundError
from sovereign_gateway.types import Clock, DecisionStatus, utc_now

logger = logging.getLogger("sovereign.gateway.audit")

EntrySink = Callable[[AuditEntry], None]


class AuditLog:
    """
    Append-only, hash-chained record of decisions, transitions and lockouts.

    There is no API that mutates or deletes a stored entry. A correction is
    a new decision whose ``supersedes`` names the decision it corrects.
    Every decision's status is re-derived on the way in.

    Reads work on a tuple snapshot taken under the lock, so they may run
    alongside an in-flight write.

    Example::

        log = AuditLog()
        decision_id = log.record(decision)
        snapshot = log.compute_health(window=timedelta(days=7))
        report = log.periodic_review(7)
    """

    def __init__(self, config: AuditConfig | None = None, clock: Clock | None = None) -> None:
        self._config = config or AuditConfig()
        self._clock = clock or utc_now
        self._entries: list[AuditEntry] = []
        self._by_id: dict[str, AuditEntry] = {}
        self._last_hash = GENESIS_HASH
        self._sinks: list[EntrySink] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Public API: writes
    # ------------------------------------------------------------------

    def add_sink(self, sink: EntrySink) -> None:
        """Register a callable that receives every entry after it is appended."""
        self._sinks.append(sink)

    def record(self, decision: Decision) -> str:
        """
        Record a decision and return its id.

        Raises:
            DecisionNotFoundError: If ``decision.supersedes`` names a decision
                that was never recorded.
        """
        return self.record_decision(decision).decision_id

    def record_decision(self, decision: Decision) -> Decision:
        """
        Record a decision and return the stored copy with its derived status.

        Raises:
            DecisionNotFoundError: If ``decision.supersedes`` names a decision
                that was never recorded.
        """
        with self._lock:
            if decision.supersedes is not None:
                linked = self._by_id.get(decision.supersedes)
                if linked is None or linked.kind != "decision":
                    raise DecisionNotFoundError(decision.supersedes)

            status = status_for(decision, self._config.review_risk_factor_limit)
            stored = decision if decision.status is status else decision.model_copy(
                update={"status": status}
            )
            self._append(stored)

        log = logger.warning if status is DecisionStatus.BLOCKED else logger.info
        log(
            "decision_recorded",
            extra={
                "decision_id": stored.decision_id,
                "principal_id": stored.principal_id,
                "action_class": stored.action_class,
                "status": status.value,
                "detections": [d.signature_id for d in stored.detections],
            },
        )
        return stored

    def record_transition(self, transition: ModeTransition) -> AuditEntry:
        """Append a mode transition, accepted or rejected."""
        with self._lock:
            return self._append(transition)

    def record_lockout(self, lockout: LockoutRecord) -> AuditEntry:
        """Append a ``critical-lockout`` or ``lockout-cleared`` entry."""
        with self._lock:
            entry = self._append(lockout)
        logger.warning(
            "critical_lockout" if lockout.kind == "critical-lockout" else "lockout_cleared",
            extra={
                "lockout_id": lockout.lockout_id,
                "principal_id": lockout.principal_id,
                "decision_id": lockout.decision_id,
                "signature_ids": list(lockout.signature_ids),
            },
        )
        return entry

    def restore(self, entries: Iterable[AuditEntry]) -> int:
        """
        Load persisted entries into an empty log, verifying the chain.

        Entries are not handed to sinks; they are already durable.

        Returns:
            The number of entries restored.

        Raises:
            ConfigurationError: If the log already holds entries or the
                loaded chain does not verify.
        """
        loaded = list(entries)
        with self._lock:
            if self._entries:
                raise ConfigurationError("Cannot restore history into a non-empty audit log.")
            valid, error = verify_chain(loaded)
            if not valid:
                raise ConfigurationError(f"Persisted audit history failed verification: {error}")
            for entry in loaded:
                self._entries.append(entry)
                self._by_id[entry.record_id] = entry
            if loaded:
                self._last_hash = loaded[-1].entry_hash
        logger.info("audit_history_restored", extra={"entries": len(loaded)})
        return len(loaded)

    # ------------------------------------------------------------------
    # Public API: reads
    # ------------------------------------------------------------------

    def entries(self) -> tuple[AuditEntry, ...]:
        """Return every entry, oldest first."""
        with self._lock:
            return tuple(self._entries)

    def decisions(self) -> list[Decision]:
        return [e.record for e in self.entries() if isinstance(e.record, Decision)]

    def transitions(self) -> list[ModeTransition]:
        return [e.record for e in self.entries() if isinstance(e.record, ModeTransition)]

    def lockouts(self) -> list[LockoutRecord]:
        return [e.record for e in self.entries() if isinstance(e.record, LockoutRecord)]

    def get(self, record_id: str) -> AuditRecord | None:
        """Return the record with ``record_id``, or None."""
        with self._lock:
            entry = self._by_id.get(record_id)
        return entry.record if entry is not None else None

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def latest(self, n: int = 10) -> list[AuditEntry]:
        """
        Return the ``n`` most recent entries, most recent last.

        Raises:
            ValueError: If ``n`` < 1.
        """
        if n < 1:
            raise ValueError(f"n must be >= 1; got {n}.")
        return list(self.entries()[-n:])

    def query(self, decision_filter: DecisionFilter | None = None) -> DecisionQueryResult:
        """Query recorded decisions. Returns all decisions when no filter is given."""
        return apply_filter(self.decisions(), decision_filter or DecisionFilter())

    def verify_chain(self) -> tuple[bool, str | None]:
        """Verify the hash chain over every stored entry."""
        return verify_chain(self.entries())

    def compute_health(
        self,
        window: timedelta | None = None,
        now: datetime | None = None,
    ) -> AuditHealthSnapshot:
        """
        Compute a fresh health snapshot.

        Args:
            window: Trailing window to cover. None covers every decision.
            now: End of the window. Defaults to the clock.
        """
        end = now or self._clock()
        start = end - window if window is not None else None
        return compute_health(self.decisions(), start, end, self._clock())

    def periodic_review(self, period_days: int, now: datetime | None = None) -> ReviewReport:
        """Review the decisions of the trailing ``period_days``."""
        report = build_review(self.decisions(), period_days, now or self._clock(), self._config)
        logger.info(
            "periodic_review_completed",
            extra={
                "review_id": report.review_id,
                "decisions_reviewed": report.decisions_reviewed,
                "health": report.overall_health,
            },
        )
        return report

    def has_recent_critical(self, n: int) -> bool:
        """
        Return True when any of the last ``n`` decisions carries a critical
        detection. Decisions before the latest ``lockout-cleared`` entry are
        ignored.
        """
        if n < 1:
            return False
        recent: list[Decision] = []
        for entry in reversed(self.entries()):
            record = entry.record
            if isinstance(record, LockoutRecord) and record.kind == "lockout-cleared":
                break
            if isinstance(record, Decision):
                recent.append(record)
                if len(recent) == n:
                    break
        return any(d.has_critical for d in recent)

    def lockout_active(self) -> bool:
        """Return True when the newest lockout entry is an uncleared ``critical-lockout``."""
        for entry in reversed(self.entries()):
            if isinstance(entry.record, LockoutRecord):
                return entry.record.kind == "critical-lockout"
        return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _append(self, record: AuditRecord) -> AuditEntry:
        entry = link(len(self._entries), record, self._last_hash)
        self._entries.append(entry)
        self._by_id[entry.record_id] = entry
        self._last_hash = entry.entry_hash
        for sink in self._sinks:
            sink(entry)
        return entry
