import argparse
import os
import time
from datetime import datetime, timedelta
from typing import List, Optional

from bittensor.core.config import Config
from bittensor.utils.btlogging import logging

from launchpad import __version__
from launchpad.adapters.campaign_store import ICampaignStore
from launchpad.adapters.pool_stats_source import IPoolStatsSource
from launchpad.component_factory import ComponentFactory
from launchpad.constants import (
    DEFAULT_TRANSITION_POLL_INTERVAL_SECONDS,
    DEFAULT_CHAIN_POLL_INTERVAL_SECONDS,
    DEFAULT_RPC_TIMEOUT_SECONDS,
    DEFAULT_API_TIMEOUT_SECONDS,
    DEFAULT_WHITELIST_START_OFFSET,
    DEFAULT_WHITELIST_END_OFFSET,
    DEFAULT_CLAIM_START_OFFSET,
    DEFAULT_LISTING_DATE_OFFSET,
)
from launchpad.errors import ConfigurationError
from launchpad.launchpad_config import LaunchpadConfig, parse_rpc_urls
from launchpad.periodic_task import utc_now
from launchpad.phase_engine import PhaseOffsets

HOUR_SECONDS = 3600


def build_parser() -> argparse.ArgumentParser:
    """Command line arguments of the automation process."""
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--transition-poll-interval", type=float, default=DEFAULT_TRANSITION_POLL_INTERVAL_SECONDS,
        help="Seconds between phase transition runs."
    )
    parser.add_argument(
        "--chain-poll-interval", type=float, default=DEFAULT_CHAIN_POLL_INTERVAL_SECONDS,
        help="Seconds between chain reconciliation runs."
    )
    parser.add_argument(
        "--rpc-timeout", type=float, default=DEFAULT_RPC_TIMEOUT_SECONDS,
        help="Timeout in seconds of every chain RPC call."
    )
    parser.add_argument(
        "--api-timeout", type=float, default=DEFAULT_API_TIMEOUT_SECONDS,
        help="Timeout in seconds of every campaign store request."
    )
    parser.add_argument(
        "--api-base-url", type=str, default=None,
        help="Campaign store REST root URL. Defaults to the API_BASE_URL environment variable."
    )
    parser.add_argument(
        "--rpc-url", action="append", default=[], metavar="CHAIN_ID=URL",
        help="RPC endpoint for a chain; may be repeated. RPC_URL_<chain id> is used otherwise."
    )
    parser.add_argument(
        "--whitelist-start-offset-hours", type=float,
        default=DEFAULT_WHITELIST_START_OFFSET.total_seconds() / HOUR_SECONDS,
        help="Default whitelist start, in hours before sale start."
    )
    parser.add_argument(
        "--whitelist-end-offset-hours", type=float,
        default=DEFAULT_WHITELIST_END_OFFSET.total_seconds() / HOUR_SECONDS,
        help="Default whitelist end, in hours before sale start."
    )
    parser.add_argument(
        "--claim-start-offset-hours", type=float,
        default=DEFAULT_CLAIM_START_OFFSET.total_seconds() / HOUR_SECONDS,
        help="Default claim start, in hours after sale end."
    )
    parser.add_argument(
        "--listing-offset-hours", type=float,
        default=DEFAULT_LISTING_DATE_OFFSET.total_seconds() / HOUR_SECONDS,
        help="Default listing date, in hours after sale end."
    )
    parser.add_argument(
        "--once", action="store_true", default=False,
        help="Run one tick of each loop and exit."
    )
    return parser


def build_launchpad_config(config) -> LaunchpadConfig:
    """
    Validate parsed arguments into a LaunchpadConfig.

    Raises:
        ConfigurationError: If any setting is invalid
    """
    offsets = PhaseOffsets(
        whitelist_start_before_sale=timedelta(hours=config.whitelist_start_offset_hours),
        whitelist_end_before_sale=timedelta(hours=config.whitelist_end_offset_hours),
        claim_start_after_sale_end=timedelta(hours=config.claim_start_offset_hours),
        listing_after_sale_end=timedelta(hours=config.listing_offset_hours),
    )
    return LaunchpadConfig(
        transition_poll_interval_seconds=config.transition_poll_interval,
        chain_poll_interval_seconds=config.chain_poll_interval,
        rpc_timeout_seconds=config.rpc_timeout,
        api_timeout_seconds=config.api_timeout,
        offsets=offsets,
        api_base_url=config.api_base_url or os.getenv("API_BASE_URL"),
        api_key=os.getenv("API_KEY"),
        rpc_urls=parse_rpc_urls(config.rpc_url),
    )


class AutomationService:
    """
    Campaign lifecycle automation process.

    Runs the transition scheduler and the chain reconciler side by side, each
    on its own interval and thread.
    """

    def __init__(
        self,
        args: Optional[List[str]] = None,
        store: Optional[ICampaignStore] = None,
        pool_stats_source: Optional[IPoolStatsSource] = None,
    ):
        """
        Initialize the automation process.

        Raises:
            ConfigurationError: If the configuration is invalid; the process
                refuses to start
        """
        self.config = self._get_config(args)
        self._setup_logging()
        self.launchpad_config = build_launchpad_config(self.config)
        self.started_at: Optional[datetime] = None

        components = ComponentFactory.create(
            self.launchpad_config, store=store, pool_stats_source=pool_stats_source
        )
        self.store = components.store
        self.notifier = components.notifier
        self.transition_scheduler = components.transition_scheduler
        self.chain_reconciler = components.chain_reconciler

    def _get_config(self, args: Optional[List[str]] = None) -> Config:
        """Get process configuration."""
        parser = build_parser()
        logging.add_args(parser)
        config = Config(parser, args=args)
        config.full_path = os.path.expanduser(
            "{}/launchpad/automation".format(config.logging.logging_dir)
        )
        os.makedirs(config.full_path, exist_ok=True)
        return config

    def _setup_logging(self):
        """Set up logging."""
        logging(config=self.config, logging_dir=self.config.full_path)
        logging.info(f"Running launchpad automation v{__version__}")

    @property
    def is_running(self) -> bool:
        return self.transition_scheduler.is_running or self.chain_reconciler.is_running

    def start(self):
        """Start both loops in the background."""
        if self.is_running:
            return
        self.started_at = utc_now()
        self.transition_scheduler.start()
        self.chain_reconciler.start()
        logging.success("Automation service started")

    def stop(self, timeout: Optional[float] = None):
        """Stop both loops, letting each finish the campaign it is processing."""
        self.transition_scheduler.stop(timeout)
        self.chain_reconciler.stop(timeout)
        self.started_at = None
        logging.success("Automation service stopped")

    def sync_once(self):
        """
        One-time run of both loops.

        Does not wait for the intervals - useful for manual syncs or testing.
        """
        logging.info("Running one-time phase check and chain sync...")
        transitions = self.transition_scheduler.tick()
        logging.info(f"Phase transitions: {transitions}")
        syncs = self.chain_reconciler.tick()
        logging.info(f"Chain sync: {syncs}")
        logging.success("One-time sync completed.")

    def get_status(self) -> dict:
        """Automation status for health checks."""
        return {
            "is_running": self.is_running,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "version": __version__,
            "last_transition_run": self.transition_scheduler.last_run_at,
            "last_chain_sync": self.chain_reconciler.last_run_at,
        }

    def run(self):
        """Main automation loop."""
        self.start()
        try:
            while self.is_running:
                time.sleep(1)
        except KeyboardInterrupt:
            logging.success("Keyboard interrupt detected. Stopping automation.")
        finally:
            self.stop()


def main(args: Optional[List[str]] = None):
    try:
        service = AutomationService(args)
    except ConfigurationError as e:
        logging.error(f"Refusing to start: {e}")
        raise SystemExit(1)
    if service.config.once:
        service.sync_once()
    else:
        service.run()


# Run the automation service.
if __name__ == "__main__":
    main()
