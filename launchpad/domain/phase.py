"""
Phase domain model.

The five lifecycle phases of a campaign, their per-instant status and the
time window each phase covers.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from launchpad.errors import InvalidPhaseError


# Older records store the processing phase as "filled"
_PHASE_ALIASES = {
    "filled": "processing",
}


class Phase(str, Enum):
    """Lifecycle phase, totally ordered by declaration."""

    UPCOMING = "upcoming"
    LIVE = "live"
    PROCESSING = "processing"
    CLAIMABLE = "claimable"
    ENDED = "ended"

    @property
    def order(self) -> int:
        return list(Phase).index(self)

    @classmethod
    def parse(cls, value: Union["Phase", str]) -> "Phase":
        """
        Parse a phase from its persisted or user-supplied value.

        Args:
            value: Phase member or its string value ("filled" is accepted for processing)

        Returns:
            Matching Phase

        Raises:
            InvalidPhaseError: If the value is not one of the five phases
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidPhaseError(f"Phase must be a string, got {type(value).__name__}")
        normalized = value.strip().lower()
        normalized = _PHASE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidPhaseError(
                f"Unknown phase {value!r}; expected one of {[p.value for p in cls]}"
            ) from None

    def __str__(self) -> str:
        return self.value


class PhaseStatus(str, Enum):
    """Status of a phase at a given instant."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PhaseWindow:
    """Half-open time window [start, end); end is None when unbounded."""

    start: datetime
    end: Optional[datetime] = None

    def contains(self, now: datetime) -> bool:
        if now < self.start:
            return False
        return self.end is None or now < self.end


@dataclass(frozen=True)
class PhaseState:
    """A phase with its window and status at the instant it was computed."""

    phase: Phase
    window: PhaseWindow
    status: PhaseStatus

    @property
    def is_active(self) -> bool:
        return self.status == PhaseStatus.ACTIVE

    def __str__(self) -> str:
        return f"{self.phase.value}:{self.status.value}"
