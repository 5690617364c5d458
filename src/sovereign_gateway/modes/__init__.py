# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from sovereign_gateway.modes.catalog import DEFAULT_MODE_PROFILES, ModeCatalog, ModeProfile
from sovereign_gateway.modes.machine import (
    ModeStateMachine,
    ModeStatus,
    TransitionRecorder,
    TransitionResult,
)

__all__ = [
    "ModeStateMachine",
    "ModeStatus",
    "TransitionResult",
    "TransitionRecorder",
    "ModeCatalog",
    "ModeProfile",
    "DEFAULT_MODE_PROFILES",
]
