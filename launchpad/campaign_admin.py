"""
Administrator write path for campaign phases and schedules.

Overrides are validated when written: an unknown phase is rejected here
instead of being stored and matching no phase later.
"""
from datetime import datetime
from typing import Optional, Union

from bittensor.utils.btlogging import logging

from launchpad.adapters.campaign_store import ICampaignStore
from launchpad.domain.campaign import Campaign, Schedule
from launchpad.domain.phase import Phase
from launchpad.errors import CampaignArchivedError, InvalidScheduleError
from launchpad.notifier import EventNotifier
from launchpad.periodic_task import utc_now
from launchpad.phase_engine import (
    DEFAULT_OFFSETS,
    PhaseOffsets,
    compute_phases,
    get_active_phase,
    validate_schedule,
)


def _load_writable(store: ICampaignStore, campaign_id: str) -> Campaign:
    campaign = store.get_campaign(campaign_id)
    if campaign.is_archived:
        raise CampaignArchivedError(f"Campaign {campaign_id} has ended and is archived")
    return campaign


def _notify(notifier: Optional[EventNotifier], campaign: Campaign, old_phase: Phase, at: datetime) -> None:
    if notifier is not None and campaign.current_phase != old_phase:
        notifier.on_transition(campaign, old_phase, campaign.current_phase, at=at)


def apply_override(
    store: ICampaignStore,
    campaign_id: str,
    phase: Union[Phase, str],
    notifier: Optional[EventNotifier] = None,
    now: Optional[datetime] = None,
) -> Campaign:
    """
    Force a campaign into a phase.

    The override and current_phase are written together, so readers see the
    new phase immediately rather than at the next scheduler tick.

    Raises:
        InvalidPhaseError: If phase is not one of the five phases
        CampaignArchivedError: If the campaign has ended
    """
    override = Phase.parse(phase)
    now = now or utc_now()
    campaign = _load_writable(store, campaign_id)
    old_phase = campaign.current_phase

    updated = store.update_campaign(
        campaign_id,
        {"phase_override": override, "current_phase": override, "phase_updated_at": now},
        expected_version=campaign.version,
    )
    logging.info(f"Phase override for campaign {campaign_id}: {override}")
    _notify(notifier, updated, old_phase, now)
    return updated


def clear_override(
    store: ICampaignStore,
    campaign_id: str,
    notifier: Optional[EventNotifier] = None,
    now: Optional[datetime] = None,
    offsets: PhaseOffsets = DEFAULT_OFFSETS,
) -> Campaign:
    """
    Return a campaign to schedule-derived phases.

    current_phase is recomputed from the schedule right away. If the schedule
    is invalid the cached phase is kept and the scheduler reports the error.
    """
    now = now or utc_now()
    campaign = store.get_campaign(campaign_id)
    if campaign.phase_override is None:
        return campaign
    old_phase = campaign.current_phase

    fields = {"phase_override": None, "phase_updated_at": now}
    try:
        phases = compute_phases(campaign.schedule, None, now, offsets)
        fields["current_phase"] = get_active_phase(phases).phase
    except InvalidScheduleError as e:
        logging.warning(f"Keeping cached phase of campaign {campaign_id}: {e}")

    updated = store.update_campaign(campaign_id, fields, expected_version=campaign.version)
    logging.info(f"Cleared phase override for campaign {campaign_id}")
    _notify(notifier, updated, old_phase, now)
    return updated


def update_schedule(store: ICampaignStore, campaign_id: str, schedule: Schedule) -> Campaign:
    """
    Replace a campaign's schedule anchors.

    The phase itself is left to the scheduler.

    Raises:
        InvalidScheduleError: If the schedule is missing sale anchors or unordered
        CampaignArchivedError: If the campaign has ended
    """
    validate_schedule(schedule)
    campaign = _load_writable(store, campaign_id)
    updated = store.update_campaign(campaign_id, {"schedule": schedule}, expected_version=campaign.version)
    logging.info(f"Updated schedule of campaign {campaign_id}")
    return updated
