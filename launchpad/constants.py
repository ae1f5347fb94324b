"""
Constants used throughout the launchpad automation.

All project constants are centralized here for easy maintenance and configuration.
"""
from datetime import timedelta

# Poll intervals (seconds)
DEFAULT_TRANSITION_POLL_INTERVAL_SECONDS = 30
DEFAULT_CHAIN_POLL_INTERVAL_SECONDS = 30

# Every chain RPC and REST call is bounded by this timeout (seconds)
DEFAULT_RPC_TIMEOUT_SECONDS = 10
DEFAULT_API_TIMEOUT_SECONDS = 10

# Default phase window offsets, applied when optional anchors are absent
DEFAULT_WHITELIST_START_OFFSET = timedelta(days=7)   # before sale start
DEFAULT_WHITELIST_END_OFFSET = timedelta(hours=1)    # before sale start
DEFAULT_CLAIM_START_OFFSET = timedelta(hours=24)     # after sale end
DEFAULT_LISTING_DATE_OFFSET = timedelta(days=7)      # after sale end

# Conflicting writes are retried this many times within one tick
PERSISTENCE_CONFLICT_RETRIES = 1

# Chain ids with built-in RPC endpoints
SEPOLIA_CHAIN_ID = 11155111
BSC_TESTNET_CHAIN_ID = 97
POLYGON_MUMBAI_CHAIN_ID = 80001

DEFAULT_RPC_URLS = {
    SEPOLIA_CHAIN_ID: "https://rpc.sepolia.org",
    BSC_TESTNET_CHAIN_ID: "https://data-seed-prebsc-1-s1.binance.org:8545/",
    POLYGON_MUMBAI_CHAIN_ID: "https://rpc-mumbai.maticvigil.com/",
}

# Environment variable prefix for per-chain RPC URLs (e.g. RPC_URL_97)
RPC_URL_ENV_PREFIX = "RPC_URL_"

# REST (PostgREST) table names
CAMPAIGNS_TABLE = "project_submissions"
NOTIFICATIONS_TABLE = "notifications"
