# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from sovereign_gateway.storage.file import FileAdapter
from sovereign_gateway.storage.interface import PersistenceAdapter
from sovereign_gateway.storage.memory import MemoryAdapter
from sovereign_gateway.storage.queue import PersistenceQueue

__all__ = [
    "PersistenceAdapter",
    "MemoryAdapter",
    "FileAdapter",
    "PersistenceQueue",
]
