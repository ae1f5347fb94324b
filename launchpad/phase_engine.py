"""
Phase derivation for campaigns.

Pure functions: given a schedule, an optional administrator override and an
instant, compute the ordered phase list and which phase is active. Used by
the transition scheduler and by the client read path; nothing here has
side effects.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Union

from launchpad.constants import (
    DEFAULT_WHITELIST_START_OFFSET,
    DEFAULT_WHITELIST_END_OFFSET,
    DEFAULT_CLAIM_START_OFFSET,
    DEFAULT_LISTING_DATE_OFFSET,
)
from launchpad.domain.campaign import Schedule
from launchpad.domain.phase import Phase, PhaseState, PhaseStatus, PhaseWindow
from launchpad.errors import InvalidScheduleError

# Anchors in the order they must appear on the timeline
ANCHOR_ORDER = (
    "whitelist_start",
    "whitelist_end",
    "sale_start",
    "sale_end",
    "claim_start",
    "listing_date",
)


@dataclass(frozen=True)
class PhaseOffsets:
    """Offsets used to derive anchors an administrator has not set."""

    whitelist_start_before_sale: timedelta = DEFAULT_WHITELIST_START_OFFSET
    whitelist_end_before_sale: timedelta = DEFAULT_WHITELIST_END_OFFSET
    claim_start_after_sale_end: timedelta = DEFAULT_CLAIM_START_OFFSET
    listing_after_sale_end: timedelta = DEFAULT_LISTING_DATE_OFFSET


DEFAULT_OFFSETS = PhaseOffsets()


def validate_schedule(schedule: Schedule) -> None:
    """
    Check that the required anchors exist and the set anchors are ordered.

    Raises:
        InvalidScheduleError: If sale_start/sale_end are missing or any two
            set anchors are out of order
    """
    if schedule is None:
        raise InvalidScheduleError("Campaign has no schedule")
    if schedule.sale_start is None or schedule.sale_end is None:
        raise InvalidScheduleError("Schedule requires both sale_start and sale_end")

    previous_name, previous = None, None
    for name in ANCHOR_ORDER:
        value = getattr(schedule, name)
        if value is None:
            continue
        if previous is not None and value < previous:
            raise InvalidScheduleError(
                f"Anchor {name} ({value.isoformat()}) is before "
                f"{previous_name} ({previous.isoformat()})"
            )
        previous_name, previous = name, value


def _clamp(value: datetime, lower: Optional[datetime], upper: Optional[datetime]) -> datetime:
    if lower is not None and value < lower:
        value = lower
    if upper is not None and value > upper:
        value = upper
    return value


def resolve_anchors(schedule: Schedule, offsets: PhaseOffsets = DEFAULT_OFFSETS) -> Dict[str, datetime]:
    """
    Fill in absent anchors from the offset table.

    A derived anchor is clamped between its explicitly set neighbours, so the
    resolved anchors are ordered whenever the explicit ones are.

    Returns:
        Mapping of every anchor name to an instant
    """
    validate_schedule(schedule)
    sale_start, sale_end = schedule.sale_start, schedule.sale_end

    whitelist_start = schedule.whitelist_start
    whitelist_end = schedule.whitelist_end
    if whitelist_start is None:
        whitelist_start = _clamp(
            sale_start - offsets.whitelist_start_before_sale, None, whitelist_end or sale_start
        )
    if whitelist_end is None:
        whitelist_end = _clamp(
            sale_start - offsets.whitelist_end_before_sale, whitelist_start, sale_start
        )

    claim_start = schedule.claim_start
    listing_date = schedule.listing_date
    if claim_start is None:
        claim_start = _clamp(
            sale_end + offsets.claim_start_after_sale_end, sale_end, listing_date
        )
    if listing_date is None:
        listing_date = _clamp(sale_end + offsets.listing_after_sale_end, claim_start, None)

    return {
        "whitelist_start": whitelist_start,
        "whitelist_end": whitelist_end,
        "sale_start": sale_start,
        "sale_end": sale_end,
        "claim_start": claim_start,
        "listing_date": listing_date,
    }


def resolve_windows(schedule: Schedule, offsets: PhaseOffsets = DEFAULT_OFFSETS) -> Dict[Phase, PhaseWindow]:
    """Window of every phase, in phase order."""
    anchors = resolve_anchors(schedule, offsets)
    return {
        Phase.UPCOMING: PhaseWindow(anchors["whitelist_start"], anchors["whitelist_end"]),
        Phase.LIVE: PhaseWindow(anchors["sale_start"], anchors["sale_end"]),
        Phase.PROCESSING: PhaseWindow(anchors["sale_end"], anchors["claim_start"]),
        Phase.CLAIMABLE: PhaseWindow(anchors["claim_start"], anchors["listing_date"]),
        Phase.ENDED: PhaseWindow(anchors["listing_date"], None),
    }


def _override_states(override: Phase, windows: Dict[Phase, PhaseWindow]) -> List[PhaseState]:
    states = []
    for phase, window in windows.items():
        if phase.order < override.order:
            status = PhaseStatus.COMPLETED
        elif phase == override:
            status = PhaseStatus.ACTIVE
        else:
            status = PhaseStatus.PENDING
        states.append(PhaseState(phase=phase, window=window, status=status))
    return states


def _scheduled_status(phase: Phase, window: PhaseWindow, now: datetime, sale_start: datetime) -> PhaseStatus:
    if phase == Phase.UPCOMING:
        # Active before the whitelist opens and across the gap up to sale start
        return PhaseStatus.ACTIVE if now < sale_start else PhaseStatus.COMPLETED
    if window.end is not None and now >= window.end:
        return PhaseStatus.COMPLETED
    if window.contains(now):
        return PhaseStatus.ACTIVE
    return PhaseStatus.PENDING


def compute_phases(
    schedule: Schedule,
    override_phase: Optional[Union[Phase, str]],
    now: datetime,
    offsets: PhaseOffsets = DEFAULT_OFFSETS,
) -> List[PhaseState]:
    """
    Compute the ordered phase list of a campaign at a given instant.

    With a valid override the phases before it are completed, the override is
    active and the later phases are pending; time is not consulted. Without
    one each phase is completed once its window has ended, active while its
    window contains now and pending otherwise.

    Args:
        schedule: Campaign schedule anchors
        override_phase: Administrator override, or None
        now: Instant to evaluate at
        offsets: Offsets used for anchors that are not set

    Returns:
        List of PhaseState in phase order

    Raises:
        InvalidScheduleError: If the schedule is missing sale anchors or unordered
        InvalidPhaseError: If the override is not one of the five phases
    """
    windows = resolve_windows(schedule, offsets)

    if override_phase is not None:
        return _override_states(Phase.parse(override_phase), windows)

    return [
        PhaseState(
            phase=phase,
            window=window,
            status=_scheduled_status(phase, window, now, schedule.sale_start),
        )
        for phase, window in windows.items()
    ]


def get_active_phase(phases: List[PhaseState]) -> PhaseState:
    """Return the active phase, falling back to the first phase if none is active."""
    for state in phases:
        if state.is_active:
            return state
    return phases[0]


def get_countdown_target(phases: List[PhaseState], schedule: Schedule) -> datetime:
    """
    Instant at which the active phase hands over to the next one.

    For contiguous phases this is the active window's end. While upcoming it
    is sale start, not the upcoming window's end (whitelist end), since
    upcoming stays active until the sale opens. An unbounded active phase
    falls back to the schedule's sale end.
    """
    active = get_active_phase(phases)
    index = phases.index(active)
    if index + 1 < len(phases):
        return phases[index + 1].window.start
    if active.window.end is not None:
        return active.window.end
    return schedule.sale_end
