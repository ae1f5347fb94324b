"""
Periodic phase transitions.

Recomputes the active phase of every campaign that is not overridden,
persists changes and notifies. Only current_phase and phase_updated_at are
written here; funding statistics belong to the chain reconciler.
"""
from datetime import datetime
import traceback
from typing import Callable

from bittensor.utils.btlogging import logging

from launchpad.adapters.campaign_store import ICampaignStore
from launchpad.constants import DEFAULT_TRANSITION_POLL_INTERVAL_SECONDS, PERSISTENCE_CONFLICT_RETRIES
from launchpad.domain.campaign import Campaign
from launchpad.domain.phase import Phase
from launchpad.errors import InvalidScheduleError, PersistenceConflictError
from launchpad.notifier import EventNotifier
from launchpad.periodic_task import PeriodicTask, TickResult, utc_now
from launchpad.phase_engine import DEFAULT_OFFSETS, PhaseOffsets, compute_phases, get_active_phase

# Ended campaigns are archived and never scanned again
SCHEDULED_PHASES = (Phase.UPCOMING, Phase.LIVE, Phase.PROCESSING, Phase.CLAIMABLE)


class TransitionScheduler(PeriodicTask):
    """
    Advances campaigns through their phases on a fixed interval.

    Overridden campaigns never auto-transition. A campaign whose schedule is
    invalid is logged and skipped without affecting the others.
    """

    name = "transition-scheduler"

    def __init__(
        self,
        store: ICampaignStore,
        notifier: EventNotifier,
        interval_seconds: float = DEFAULT_TRANSITION_POLL_INTERVAL_SECONDS,
        offsets: PhaseOffsets = DEFAULT_OFFSETS,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(interval_seconds, clock)
        self.store = store
        self.notifier = notifier
        self.offsets = offsets

    def compute_current_phase(self, campaign: Campaign, now: datetime) -> Phase:
        phases = compute_phases(campaign.schedule, None, now, self.offsets)
        return get_active_phase(phases).phase

    def run_once(self, now: datetime) -> TickResult:
        result = TickResult()
        campaigns = self.store.find_campaigns(phases=SCHEDULED_PHASES, override_is_null=True)
        logging.debug(f"Checking phase transitions for {len(campaigns)} campaigns")

        for campaign in campaigns:
            if self.stop_requested:
                logging.info("Stop requested, leaving remaining campaigns for the next run")
                result.interrupted = True
                break
            result.checked += 1
            try:
                if self.advance_campaign(campaign, now):
                    result.updated += 1
            except InvalidScheduleError as e:
                result.failed += 1
                logging.error(f"Invalid schedule for campaign {campaign.id}, skipping: {e}")
            except Exception as e:
                result.failed += 1
                logging.error(f"Error checking phase transition for campaign {campaign.id}: {e}")
                traceback.print_exc()
        return result

    def advance_campaign(self, campaign: Campaign, now: datetime) -> bool:
        """
        Persist the campaign's phase at now if it changed.

        A version conflict is retried after re-reading the record; if it
        persists the campaign is left for the next tick.

        Returns:
            True if a transition was written
        """
        attempts = PERSISTENCE_CONFLICT_RETRIES + 1
        for attempt in range(attempts):
            if campaign.phase_override is not None:
                return False
            old_phase = campaign.current_phase
            new_phase = self.compute_current_phase(campaign, now)
            if new_phase == old_phase:
                return False
            try:
                updated = self.store.update_campaign(
                    campaign.id,
                    {"current_phase": new_phase, "phase_updated_at": now},
                    expected_version=campaign.version,
                )
            except PersistenceConflictError as e:
                if attempt + 1 >= attempts:
                    logging.warning(f"Deferring campaign {campaign.id} to next run: {e}")
                    return False
                logging.debug(f"Conflict on campaign {campaign.id}, re-reading: {e}")
                campaign = self.store.get_campaign(campaign.id)
                continue

            logging.info(f"Auto-advancing campaign {campaign.id} from {old_phase} to {new_phase}")
            self.notifier.on_transition(updated, old_phase, new_phase, at=now)
            return True
        return False
