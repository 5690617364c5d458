# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import asyncio
import collections
import logging
import threading

from sovereign_gateway.audit.record import AuditEntry
from sovereign_gateway.config import PersistenceConfig
from sovereign_gateway.errors import PersistenceDegradedError
from sovereign_gateway.storage.interface import PersistenceAdapter

logger = logging.getLogger("sovereign.gateway.persistence")


class PersistenceQueue:
    """
    Ordered write-behind buffer between the audit log and a durable adapter.

    Entries are enqueued synchronously while the gateway lock is held and
    written later by :meth:`flush`, outside the lock. A write that keeps
    failing leaves its entry, and every entry behind it, queued for the
    next flush so that append order on disk matches the chain.

    Example::

        queue = PersistenceQueue(FileAdapter("audit.ndjson"))
        audit_log.add_sink(queue.enqueue)
        error = await queue.flush()
        if error is not None:
            print(error.pending, "entries awaiting retry")
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        config: PersistenceConfig | None = None,
    ) -> None:
        self._adapter = adapter
        self._config = config or PersistenceConfig()
        self._pending: collections.deque[AuditEntry] = collections.deque()
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._written = 0

    @property
    def adapter(self) -> PersistenceAdapter:
        return self._adapter

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enqueue(self, entry: AuditEntry) -> None:
        """Queue ``entry`` for the next flush."""
        with self._lock:
            self._pending.append(entry)

    def pending(self) -> int:
        """Return the number of entries awaiting a durable write."""
        with self._lock:
            return len(self._pending)

    def written(self) -> int:
        """Return the number of entries written since construction."""
        return self._written

    async def flush(self) -> PersistenceDegradedError | None:
        """
        Write queued entries in order.

        Each entry is attempted up to ``max_attempts`` times with a linear
        backoff between attempts. A flush already in progress makes this
        call return None immediately; the running flush owns the queued
        entries and :meth:`pending` still counts them.

        Returns:
            None when the queue drained or another flush is running, otherwise a
            :class:`~sovereign_gateway.errors.PersistenceDegradedError`
            describing what is still pending. Never raises for write failures.
        """
        if not self._flush_lock.acquire(blocking=False):
            return None
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        return None
                    entry = self._pending[0]

                error = await self._write_with_retry(entry)
                if error is not None:
                    degraded = PersistenceDegradedError(self.pending(), error)
                    logger.warning(
                        "persistence_degraded",
                        extra={
                            "pending": degraded.pending,
                            "sequence": entry.sequence,
                            "error": str(error),
                        },
                    )
                    return degraded

                with self._lock:
                    self._pending.popleft()
                self._written += 1
        finally:
            self._flush_lock.release()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _write_with_retry(self, entry: AuditEntry) -> Exception | None:
        last_error: Exception | None = None
        for attempt in range(1, self._config.max_attempts + 1):
            try:
                await self._adapter.append(entry)
                return None
            except Exception as exc:
                last_error = exc
                logger.debug(
                    "persistence_write_failed",
                    extra={"sequence": entry.sequence, "attempt": attempt, "error": str(exc)},
                )
                if attempt < self._config.max_attempts:
                    await asyncio.sleep(self._config.retry_backoff_seconds * attempt)
        return last_error
