"""
Test cases for configuration, resolvers and component wiring.
"""
import unittest
from datetime import timedelta
from unittest.mock import Mock, patch

from launchpad.adapters.campaign_store import InMemoryCampaignStore
from launchpad.adapters.pool_stats_source import IPoolStatsSource, Web3PoolStatsSource
from launchpad.component_factory import ComponentFactory
from launchpad.constants import DEFAULT_RPC_URLS, SEPOLIA_CHAIN_ID
from launchpad.errors import ConfigurationError
from launchpad.launchpad_config import LaunchpadConfig, parse_rpc_urls
from launchpad.notifier import ChainLifecycleHook
from launchpad.phase_engine import PhaseOffsets
from launchpad.resolvers import RpcUrlResolver
from workers.automation import build_launchpad_config, build_parser


class TestLaunchpadConfig(unittest.TestCase):

    def test_defaults(self):
        config = LaunchpadConfig()

        self.assertEqual(config.transition_poll_interval_seconds, 30)
        self.assertEqual(config.chain_poll_interval_seconds, 30)
        self.assertEqual(config.offsets, PhaseOffsets())
        self.assertEqual(config.rpc_urls, {})

    def test_non_positive_settings_are_rejected(self):
        for kwargs in (
            {"transition_poll_interval_seconds": 0},
            {"chain_poll_interval_seconds": -1},
            {"rpc_timeout_seconds": 0},
            {"api_timeout_seconds": None},
        ):
            with self.assertRaises(ConfigurationError):
                LaunchpadConfig(**kwargs)

    def test_negative_offset_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            LaunchpadConfig(offsets=PhaseOffsets(claim_start_after_sale_end=timedelta(hours=-1)))

    def test_parse_rpc_urls(self):
        self.assertEqual(
            parse_rpc_urls(["97=https://bsc.example.org", "1=https://eth.example.org/?key=a=b"]),
            {97: "https://bsc.example.org", 1: "https://eth.example.org/?key=a=b"},
        )
        for entry in ("https://no-chain.example.org", "bsc=https://bsc.example.org", "97="):
            with self.assertRaises(ConfigurationError):
                parse_rpc_urls([entry])


class TestCommandLine(unittest.TestCase):

    @patch.dict("os.environ", {"API_BASE_URL": "https://env.example.org", "API_KEY": "key"})
    def test_arguments_become_config(self):
        args = build_parser().parse_args([
            "--transition-poll-interval", "15",
            "--rpc-url", "97=https://bsc.example.org",
            "--claim-start-offset-hours", "48",
        ])

        config = build_launchpad_config(args)

        self.assertEqual(config.transition_poll_interval_seconds, 15)
        self.assertEqual(config.chain_poll_interval_seconds, 30)
        self.assertEqual(config.rpc_urls, {97: "https://bsc.example.org"})
        self.assertEqual(config.offsets.claim_start_after_sale_end, timedelta(hours=48))
        self.assertEqual(config.offsets.whitelist_start_before_sale, timedelta(days=7))
        self.assertEqual(config.api_base_url, "https://env.example.org")
        self.assertEqual(config.api_key, "key")

    def test_invalid_interval_refuses_to_start(self):
        args = build_parser().parse_args(["--chain-poll-interval", "0"])

        with self.assertRaises(ConfigurationError):
            build_launchpad_config(args)


class TestRpcUrlResolver(unittest.TestCase):

    @patch.dict("os.environ", {"RPC_URL_97": "https://env-bsc.example.org"})
    def test_precedence(self):
        resolver = RpcUrlResolver({SEPOLIA_CHAIN_ID: "https://sepolia.example.org"})

        self.assertEqual(resolver(SEPOLIA_CHAIN_ID), "https://sepolia.example.org")
        self.assertEqual(resolver(97), "https://env-bsc.example.org")
        self.assertEqual(resolver(80001), DEFAULT_RPC_URLS[80001])
        self.assertIsNone(resolver(424242))

    @patch.dict("os.environ", {}, clear=True)
    def test_without_defaults(self):
        self.assertIsNone(RpcUrlResolver(use_defaults=False)(SEPOLIA_CHAIN_ID))


class TestComponentFactory(unittest.TestCase):

    def test_wires_shared_store(self):
        store = InMemoryCampaignStore()
        pool_stats_source = Mock(spec=IPoolStatsSource)

        components = ComponentFactory.create(
            LaunchpadConfig(transition_poll_interval_seconds=5, chain_poll_interval_seconds=60),
            store=store,
            pool_stats_source=pool_stats_source,
        )

        self.assertIs(components.transition_scheduler.store, store)
        self.assertIs(components.chain_reconciler.store, store)
        self.assertIs(components.chain_reconciler.pool_stats_source, pool_stats_source)
        self.assertIs(components.transition_scheduler.notifier, components.notifier)
        self.assertEqual(components.transition_scheduler.interval_seconds, 5)
        self.assertEqual(components.chain_reconciler.interval_seconds, 60)
        self.assertTrue(any(isinstance(hook, ChainLifecycleHook) for hook in components.notifier.hooks))

    @patch.dict("os.environ", {}, clear=True)
    def test_missing_store_url_refuses_to_start(self):
        with self.assertRaises(ConfigurationError):
            ComponentFactory.create(LaunchpadConfig(), pool_stats_source=Mock(spec=IPoolStatsSource))

    def test_default_pool_stats_source(self):
        components = ComponentFactory.create(
            LaunchpadConfig(rpc_timeout_seconds=4, rpc_urls={97: "https://bsc.example.org"}),
            store=InMemoryCampaignStore(),
        )

        source = components.pool_stats_source
        self.assertIsInstance(source, Web3PoolStatsSource)
        self.assertEqual(source.timeout, 4)
        self.assertEqual(source.rpc_url_resolver(97), "https://bsc.example.org")


if __name__ == "__main__":
    unittest.main()
