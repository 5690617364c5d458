# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from typing import Annotated, Iterable, Iterator

from pydantic import BaseModel, Field

from sovereign_gateway.types import Mode, Sensitivity, TrustRank


class ModeProfile(BaseModel, frozen=True):
    """
    Static definition of one operational mode.

    Attributes:
        mode: The :class:`~sovereign_gateway.types.Mode` this profile describes.
        description: Human-readable summary.
        required_trust_rank: Minimum rank a principal needs to enter the mode.
        sensitivity: Detector sensitivity while the mode is active.
        restricted_to_privileged: Only the privileged principal may enter.
        cooldown_seconds: Dwell time before the next transition away from
            this mode. ``None`` uses the global cooldown.
    """

    mode: Mode
    description: str = ""
    required_trust_rank: TrustRank = TrustRank.UNKNOWN
    sensitivity: Sensitivity = Sensitivity.STANDARD
    restricted_to_privileged: bool = False
    cooldown_seconds: Annotated[float, Field(ge=0.0)] | None = None


DEFAULT_MODE_PROFILES: tuple[ModeProfile, ...] = (
    ModeProfile(
        mode=Mode.TACTICAL,
        description="Task-focused operation with standard detection.",
        required_trust_rank=TrustRank.UNKNOWN,
        sensitivity=Sensitivity.STANDARD,
    ),
    ModeProfile(
        mode=Mode.COLLABORATIVE,
        description="Joint work with a trusted collaborator.",
        required_trust_rank=TrustRank.COLLABORATIVE,
        sensitivity=Sensitivity.HEIGHTENED,
    ),
    ModeProfile(
        mode=Mode.BONDED,
        description="Privileged, high-intimacy context reserved for the owner.",
        required_trust_rank=TrustRank.MAXIMUM_BOND,
        sensitivity=Sensitivity.MAXIMUM,
        restricted_to_privileged=True,
    ),
    ModeProfile(
        mode=Mode.REFLECTIVE,
        description="Introspective review with the owner.",
        required_trust_rank=TrustRank.INTIMATE,
        sensitivity=Sensitivity.HEIGHTENED,
        restricted_to_privileged=True,
    ),
)

_SENSITIVITY_ORDER = {
    Sensitivity.STANDARD: 0,
    Sensitivity.HEIGHTENED: 1,
    Sensitivity.MAXIMUM: 2,
}


class ModeCatalog:
    """
    The closed set of modes the state machine may occupy.

    The safe mode is the profile with the lowest sensitivity; ties go to
    the profile listed first.
    """

    def __init__(self, profiles: Iterable[ModeProfile] = DEFAULT_MODE_PROFILES) -> None:
        ordered = tuple(profiles)
        if not ordered:
            raise ValueError("A mode catalog needs at least one profile.")
        by_mode: dict[Mode, ModeProfile] = {}
        for profile in ordered:
            if profile.mode in by_mode:
                raise ValueError(f"Duplicate profile for mode '{profile.mode.value}'.")
            by_mode[profile.mode] = profile
        self._profiles = ordered
        self._by_mode = by_mode

    def get(self, mode: Mode | str) -> ModeProfile | None:
        """Return the profile for ``mode``, or None when it is not in the catalog."""
        try:
            key = Mode(mode)
        except ValueError:
            return None
        return self._by_mode.get(key)

    def lowest_sensitivity(self) -> ModeProfile:
        """Return the safe-mode profile."""
        return min(self._profiles, key=lambda p: _SENSITIVITY_ORDER[p.sensitivity])

    def all(self) -> list[ModeProfile]:
        return list(self._profiles)

    def __iter__(self) -> Iterator[ModeProfile]:
        return iter(self._profiles)

    def __contains__(self, mode: object) -> bool:
        return isinstance(mode, (str, Mode)) and self.get(mode) is not None
