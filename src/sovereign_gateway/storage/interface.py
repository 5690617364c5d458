# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Abstract base class that every persistence adapter must implement.

Implementations must guarantee append-only semantics: entries written through
``append`` must never be altered or deleted by the storage layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from sovereign_gateway.audit.record import AuditEntry


class PersistenceAdapter(ABC):
    """
    Contract for durable audit storage.

    The gateway defines the record shapes and owns the hash chain; adapters
    only move fully-formed entries to and from storage.
    """

    @abstractmethod
    async def append(self, entry: AuditEntry) -> None:
        """
        Persist one audit entry.

        Called in sequence order. Implementations must not modify the entry.
        """
        ...

    @abstractmethod
    async def load(self) -> list[AuditEntry]:
        """Return every stored entry in append order."""
        ...

    async def count(self) -> int:
        """Return the number of stored entries."""
        return len(await self.load())
