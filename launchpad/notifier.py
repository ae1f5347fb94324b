"""
Phase-change notifications.

Records every transition and runs the registered phase hooks. The caller's
transition is already committed when on_transition runs, so nothing raised
here may propagate back into it.
"""
from datetime import datetime, timezone
import traceback
from typing import Callable, List, Optional

from bittensor.utils.btlogging import logging

from launchpad.adapters.campaign_store import ICampaignStore
from launchpad.domain.campaign import Campaign, PhaseChangeNotification
from launchpad.domain.phase import Phase
from launchpad.errors import NotificationDeliveryError

# Hook signature: (campaign, old_phase, new_phase) -> None
PhaseHook = Callable[[Campaign, Optional[Phase], Phase], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventNotifier:
    """Side-effect dispatcher for phase transitions."""

    def __init__(
        self,
        store: ICampaignStore,
        hooks: Optional[List[PhaseHook]] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.hooks: List[PhaseHook] = list(hooks or [])
        self.clock = clock

    def register_hook(self, hook: PhaseHook) -> None:
        self.hooks.append(hook)

    def on_transition(
        self,
        campaign: Campaign,
        old_phase: Optional[Phase],
        new_phase: Phase,
        at: Optional[datetime] = None,
    ) -> None:
        """
        Record a transition and invoke the phase hooks.

        Never raises: every failure is logged as a NotificationDeliveryError.
        """
        at = at or self.clock()
        label = campaign.name or campaign.id
        notification = PhaseChangeNotification(
            campaign_id=campaign.id,
            old_phase=old_phase,
            new_phase=new_phase,
            at=at,
            message=f"Campaign {label} entered {new_phase.value} phase",
        )
        logging.info(f"Sending {new_phase.value} notification for campaign {campaign.id}")

        try:
            self.store.add_notification(notification)
        except Exception as e:
            self._log_failure(NotificationDeliveryError(
                f"Failed to record notification for campaign {campaign.id}: {e}"
            ))

        for hook in list(self.hooks):
            try:
                hook(campaign, old_phase, new_phase)
            except Exception as e:
                hook_name = getattr(hook, "__name__", type(hook).__name__)
                self._log_failure(NotificationDeliveryError(
                    f"Phase hook {hook_name} failed for campaign {campaign.id}: {e}"
                ))

    @staticmethod
    def _log_failure(error: NotificationDeliveryError) -> None:
        logging.error(str(error))
        traceback.print_exc()


class ChainLifecycleHook:
    """
    Extension point for on-chain lifecycle actions.

    Starting and finishing pool contracts requires a signer, which this
    service does not hold; the hook only reports the call that is due.
    """

    # Pool contract function due when a campaign enters each phase
    PHASE_ACTIONS = {
        Phase.LIVE: "startPool",
        Phase.PROCESSING: "finishPool",
    }

    def __call__(self, campaign: Campaign, old_phase: Optional[Phase], new_phase: Phase) -> None:
        action = self.PHASE_ACTIONS.get(new_phase)
        if action is None or campaign.chain_ref is None:
            return
        logging.info(
            f"Pool {campaign.chain_ref} of campaign {campaign.id} is due for {action}() "
            f"({old_phase} -> {new_phase})"
        )
