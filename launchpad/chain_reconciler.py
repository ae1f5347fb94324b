"""
Periodic reconciliation of funding statistics with the pool contracts.

Writes only raised_amount, participant_count, hard_cap and last_synced_at,
always together in one update.
"""
from datetime import datetime
from decimal import Decimal
import traceback
from typing import Callable, Optional

from bittensor.utils.btlogging import logging

from launchpad.adapters.campaign_store import ICampaignStore
from launchpad.adapters.pool_stats_source import IPoolStatsSource
from launchpad.constants import DEFAULT_CHAIN_POLL_INTERVAL_SECONDS, PERSISTENCE_CONFLICT_RETRIES
from launchpad.domain.campaign import Campaign, PoolStats
from launchpad.domain.phase import Phase
from launchpad.errors import CampaignArchivedError, ChainUnavailableError, PersistenceConflictError
from launchpad.periodic_task import PeriodicTask, TickResult, utc_now

# Upcoming and ended pools are not read, to bound RPC cost
FUNDING_PHASES = (Phase.LIVE, Phase.PROCESSING, Phase.CLAIMABLE)


def reconciled_fields(campaign: Campaign, stats: PoolStats, now: datetime) -> dict:
    """
    Fields to write for an observation; raised_amount never decreases.

    An unknown participant count leaves the cached one in place.
    """
    fields = {
        "raised_amount": max(campaign.raised_amount, stats.total_raised),
        "last_synced_at": now,
    }
    if stats.participant_count is not None:
        fields["participant_count"] = stats.participant_count
    if stats.hard_cap:
        fields["hard_cap"] = stats.hard_cap
    return fields


class ChainReconciler(PeriodicTask):
    """
    Refreshes cached funding statistics of campaigns in a funding phase.

    An RPC failure skips the campaign until the next tick; it is never
    retried within the same run.
    """

    name = "chain-reconciler"

    def __init__(
        self,
        store: ICampaignStore,
        pool_stats_source: IPoolStatsSource,
        interval_seconds: float = DEFAULT_CHAIN_POLL_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(interval_seconds, clock)
        self.store = store
        self.pool_stats_source = pool_stats_source

    def run_once(self, now: datetime) -> TickResult:
        result = TickResult()
        campaigns = self.store.find_campaigns(phases=FUNDING_PHASES, has_chain_ref=True)
        logging.debug(f"Syncing {len(campaigns)} campaigns with their pools")

        for campaign in campaigns:
            if self.stop_requested:
                logging.info("Stop requested, leaving remaining campaigns for the next run")
                result.interrupted = True
                break
            result.checked += 1
            try:
                if self.sync_campaign(campaign, now):
                    result.updated += 1
            except ChainUnavailableError as e:
                result.failed += 1
                logging.warning(f"Chain unavailable for campaign {campaign.id}, retrying next run: {e}")
            except Exception as e:
                result.failed += 1
                logging.error(f"Error syncing campaign {campaign.id} with its pool: {e}")
                traceback.print_exc()
        return result

    def sync_campaign(self, campaign: Campaign, now: datetime) -> bool:
        """
        Read the pool once and write its statistics.

        On a version conflict the record is re-read and the same observation
        applied to it once more; the chain is not read again.

        Returns:
            True if the statistics were written
        """
        if campaign.chain_ref is None:
            return False
        stats = self.pool_stats_source.get_pool_stats(
            campaign.chain_ref.contract_address, campaign.chain_ref.chain_id
        )
        if stats.total_raised < campaign.raised_amount:
            logging.warning(
                f"Pool of campaign {campaign.id} reports {stats.total_raised}, "
                f"below cached {campaign.raised_amount}; keeping cached amount"
            )

        attempts = PERSISTENCE_CONFLICT_RETRIES + 1
        for attempt in range(attempts):
            try:
                self.store.update_campaign(
                    campaign.id,
                    reconciled_fields(campaign, stats, now),
                    expected_version=campaign.version,
                )
                logging.debug(
                    f"Synced campaign {campaign.id}: raised={stats.total_raised} "
                    f"participants={stats.participant_count}"
                )
                return True
            except PersistenceConflictError as e:
                if attempt + 1 >= attempts:
                    logging.warning(f"Deferring sync of campaign {campaign.id} to next run: {e}")
                    return False
                campaign = self.store.get_campaign(campaign.id)
                if campaign.is_archived:
                    return False
        return False


def correct_funding_stats(
    store: ICampaignStore,
    campaign_id: str,
    raised_amount: Decimal,
    participant_count: Optional[int] = None,
) -> Campaign:
    """
    Administrator correction of cached funding statistics.

    The only path allowed to lower raised_amount.

    Raises:
        CampaignArchivedError: If the campaign has ended
        ValueError: If an amount or count is negative
    """
    if raised_amount < 0 or (participant_count is not None and participant_count < 0):
        raise ValueError("Funding statistics cannot be negative")
    campaign = store.get_campaign(campaign_id)
    if campaign.is_archived:
        raise CampaignArchivedError(f"Campaign {campaign_id} has ended")
    fields = {"raised_amount": Decimal(raised_amount)}
    if participant_count is not None:
        fields["participant_count"] = participant_count
    logging.info(
        f"Correcting funding stats of campaign {campaign_id}: "
        f"raised {campaign.raised_amount} -> {raised_amount}"
    )
    return store.update_campaign(campaign_id, fields, expected_version=campaign.version)
