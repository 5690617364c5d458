# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
SHA-256 hash chaining for audit entries.

Each entry stores a digest of its own canonical content combined with the
digest of the entry before it, so any retrospective edit to an earlier
entry is detectable by re-walking the chain.
"""
from __future__ import annotations

import hashlib
import json
from typing import Sequence

from sovereign_gateway.audit.record import AuditEntry, AuditRecord

GENESIS_HASH: str = hashlib.sha256(b"SOVEREIGN_GATEWAY_GENESIS").hexdigest()


def compute_entry_hash(sequence: int, record: AuditRecord, previous_hash: str) -> str:
    """
    Compute the SHA-256 digest for an entry's canonical fields.

    The canonical representation is a JSON object with keys in a fixed
    order, serialised without whitespace.
    """
    canonical: dict[str, object] = {
        "sequence": sequence,
        "kind": record.kind,
        "record": record.model_dump(mode="json"),
        "previous_hash": previous_hash,
    }
    serialised = json.dumps(canonical, separators=(",", ":"), sort_keys=False)
    return hashlib.sha256(serialised.encode("utf-8")).hexdigest()


def link(sequence: int, record: AuditRecord, previous_hash: str) -> AuditEntry:
    """Build the :class:`AuditEntry` that appends ``record`` after ``previous_hash``."""
    return AuditEntry(
        sequence=sequence,
        record=record,
        previous_hash=previous_hash,
        entry_hash=compute_entry_hash(sequence, record, previous_hash),
    )


def verify_chain(entries: Sequence[AuditEntry]) -> tuple[bool, str | None]:
    """
    Verify the integrity of a sequence of entries, oldest first.

    Confirms that sequence numbers are contiguous from zero, that each
    ``previous_hash`` matches the preceding ``entry_hash`` (or the genesis
    hash), and that each ``entry_hash`` matches its recomputed digest.

    Returns:
        A ``(is_valid, error_message)`` tuple. ``error_message`` is ``None``
        when the chain is valid.
    """
    expected_previous = GENESIS_HASH

    for index, entry in enumerate(entries):
        if entry.sequence != index:
            return False, f"Entry {index}: sequence {entry.sequence} is out of order."

        if entry.previous_hash != expected_previous:
            return False, (
                f"Entry {index} (id={entry.record_id}): previous_hash mismatch. "
                f"Expected {expected_previous!r}, got {entry.previous_hash!r}."
            )

        recomputed = compute_entry_hash(entry.sequence, entry.record, entry.previous_hash)
        if entry.entry_hash != recomputed:
            return False, (
                f"Entry {index} (id={entry.record_id}): entry_hash mismatch; "
                "the entry may have been tampered with."
            )

        expected_previous = entry.entry_hash

    return True, None
