# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Append-only NDJSON file persistence adapter.

Entries are stored one JSON object per line, keyed by sequence, kind and
record id. The file is only ever opened in append mode for writes and is
never truncated or rewritten.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import aiofiles
from pydantic import ValidationError

from sovereign_gateway.audit.record import AuditEntry
from sovereign_gateway.storage.interface import PersistenceAdapter

logger = logging.getLogger("sovereign.gateway.persistence")


class FileAdapter(PersistenceAdapter):
    """
    Persistent, append-only NDJSON file adapter.

    Parameters
    ----------
    file_path:
        Path to the NDJSON file. The file and its parent directory are
        created on first append.
    """

    def __init__(self, file_path: str | Path) -> None:
        self._file_path = Path(file_path)

    @property
    def file_path(self) -> Path:
        return self._file_path

    async def append(self, entry: AuditEntry) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.model_dump(mode="json"), separators=(",", ":")) + "\n"
        async with aiofiles.open(self._file_path, mode="a", encoding="utf-8") as file_handle:
            await file_handle.write(line)

    async def load(self) -> list[AuditEntry]:
        if not self._file_path.exists():
            return []

        entries: list[AuditEntry] = []
        async with aiofiles.open(self._file_path, mode="r", encoding="utf-8") as file_handle:
            line_number = 0
            async for line in file_handle:
                line_number += 1
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    entries.append(AuditEntry.model_validate(json.loads(stripped)))
                except (json.JSONDecodeError, ValidationError):
                    # Skipped lines surface as a chain gap when the log is restored.
                    logger.warning(
                        "persisted_entry_unreadable",
                        extra={"path": str(self._file_path), "line": line_number},
                    )

        return entries
