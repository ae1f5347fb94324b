"""
Factory for creating the automation components from configuration.

Only responsible for object creation and wiring.
"""
from datetime import datetime
from typing import Callable, Optional

from bittensor.utils.btlogging import logging

from launchpad.adapters.campaign_store import ICampaignStore
from launchpad.adapters.pool_stats_source import IPoolStatsSource, Web3PoolStatsSource
from launchpad.adapters.rest_campaign_store import RestCampaignStore
from launchpad.chain_reconciler import ChainReconciler
from launchpad.launchpad_config import LaunchpadConfig
from launchpad.notifier import ChainLifecycleHook, EventNotifier
from launchpad.periodic_task import utc_now
from launchpad.resolvers import RpcUrlResolver
from launchpad.transition_scheduler import TransitionScheduler


class LaunchpadComponents:
    """Container for the wired automation components."""

    def __init__(
        self,
        store: ICampaignStore,
        pool_stats_source: IPoolStatsSource,
        notifier: EventNotifier,
        transition_scheduler: TransitionScheduler,
        chain_reconciler: ChainReconciler,
    ):
        self.store = store
        self.pool_stats_source = pool_stats_source
        self.notifier = notifier
        self.transition_scheduler = transition_scheduler
        self.chain_reconciler = chain_reconciler


class ComponentFactory:
    """Factory for creating automation components."""

    @staticmethod
    def create(
        config: LaunchpadConfig,
        store: Optional[ICampaignStore] = None,
        pool_stats_source: Optional[IPoolStatsSource] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> LaunchpadComponents:
        """
        Create all automation components.

        Args:
            config: Launchpad configuration
            store: Campaign store; a REST store is created when omitted
            pool_stats_source: Chain-read collaborator; a web3 source is created when omitted
            clock: Clock shared by both loops and the notifier

        Returns:
            LaunchpadComponents container
        """
        logging.info("Setting up automation components.")

        if store is None:
            store = RestCampaignStore(
                api_base_url=config.api_base_url,
                api_key=config.api_key,
                timeout=config.api_timeout_seconds,
            )
        logging.info(f"Campaign store: {type(store).__name__}")

        if pool_stats_source is None:
            pool_stats_source = Web3PoolStatsSource(
                rpc_url_resolver=RpcUrlResolver(config.rpc_urls),
                timeout=config.rpc_timeout_seconds,
            )
        logging.info(f"Pool stats source: {type(pool_stats_source).__name__}")

        notifier = EventNotifier(store, hooks=[ChainLifecycleHook()], clock=clock)

        transition_scheduler = TransitionScheduler(
            store=store,
            notifier=notifier,
            interval_seconds=config.transition_poll_interval_seconds,
            offsets=config.offsets,
            clock=clock,
        )
        chain_reconciler = ChainReconciler(
            store=store,
            pool_stats_source=pool_stats_source,
            interval_seconds=config.chain_poll_interval_seconds,
            clock=clock,
        )

        logging.info("Automation components initialized successfully.")
        return LaunchpadComponents(
            store=store,
            pool_stats_source=pool_stats_source,
            notifier=notifier,
            transition_scheduler=transition_scheduler,
            chain_reconciler=chain_reconciler,
        )
