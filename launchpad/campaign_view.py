"""
Client read surface.

Phases are recomputed on every read from the persisted schedule and
override, so a new override is visible before the scheduler's next tick.
Funding statistics are the last values the reconciler persisted.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from launchpad.adapters.campaign_store import ICampaignStore
from launchpad.countdown import Countdown, remaining
from launchpad.domain.phase import PhaseState
from launchpad.periodic_task import utc_now
from launchpad.phase_engine import (
    DEFAULT_OFFSETS,
    PhaseOffsets,
    compute_phases,
    get_active_phase,
    get_countdown_target,
)


@dataclass(frozen=True)
class CampaignView:
    """Everything the UI layer needs to render one campaign."""

    campaign_id: str
    phases: List[PhaseState]
    active_phase: PhaseState
    countdown_target: datetime
    countdown: Optional[Countdown]  # None once the target has passed
    raised_amount: Decimal
    participant_count: int
    hard_cap: Decimal
    progress_percentage: Decimal
    is_override: bool
    last_synced_at: Optional[datetime]


def get_campaign_view(
    store: ICampaignStore,
    campaign_id: str,
    now: Optional[datetime] = None,
    offsets: PhaseOffsets = DEFAULT_OFFSETS,
) -> CampaignView:
    """
    Build the read view of a campaign at now.

    Raises:
        CampaignNotFoundError: If no campaign has this id
        InvalidScheduleError: If the campaign's schedule is invalid
    """
    now = now or utc_now()
    campaign = store.get_campaign(campaign_id)
    phases = compute_phases(campaign.schedule, campaign.phase_override, now, offsets)
    target = get_countdown_target(phases, campaign.schedule)
    return CampaignView(
        campaign_id=campaign.id,
        phases=phases,
        active_phase=get_active_phase(phases),
        countdown_target=target,
        countdown=remaining(target, now),
        raised_amount=campaign.raised_amount,
        participant_count=campaign.participant_count,
        hard_cap=campaign.hard_cap,
        progress_percentage=campaign.progress_percentage,
        is_override=campaign.phase_override is not None,
        last_synced_at=campaign.last_synced_at,
    )
