# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Volatile in-memory persistence adapter.

Entries are held in a plain list in append order. Suitable for tests and
short-lived processes; data is lost when the process exits.
"""

from __future__ import annotations

from sovereign_gateway.audit.record import AuditEntry
from sovereign_gateway.storage.interface import PersistenceAdapter


class MemoryAdapter(PersistenceAdapter):
    """In-memory, non-persistent PersistenceAdapter implementation."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    async def append(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    async def load(self) -> list[AuditEntry]:
        return list(self._entries)

    async def count(self) -> int:
        return len(self._entries)
