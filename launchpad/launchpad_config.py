"""
Launchpad automation configuration.

Keep configuration simple and centralized; anything invalid is rejected at
startup so the loops never run with degenerate settings.
"""
from datetime import timedelta
from typing import Dict, Optional

from launchpad.constants import (
    DEFAULT_TRANSITION_POLL_INTERVAL_SECONDS,
    DEFAULT_CHAIN_POLL_INTERVAL_SECONDS,
    DEFAULT_RPC_TIMEOUT_SECONDS,
    DEFAULT_API_TIMEOUT_SECONDS,
)
from launchpad.errors import ConfigurationError
from launchpad.phase_engine import DEFAULT_OFFSETS, PhaseOffsets


class LaunchpadConfig:
    """Simple configuration container for the automation process."""

    def __init__(
        self,
        transition_poll_interval_seconds: float = DEFAULT_TRANSITION_POLL_INTERVAL_SECONDS,
        chain_poll_interval_seconds: float = DEFAULT_CHAIN_POLL_INTERVAL_SECONDS,
        rpc_timeout_seconds: float = DEFAULT_RPC_TIMEOUT_SECONDS,
        api_timeout_seconds: float = DEFAULT_API_TIMEOUT_SECONDS,
        offsets: PhaseOffsets = DEFAULT_OFFSETS,
        api_base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        rpc_urls: Optional[Dict[int, str]] = None,
    ):
        """
        Initialize launchpad configuration.

        Args:
            transition_poll_interval_seconds: Interval of the transition scheduler
            chain_poll_interval_seconds: Interval of the chain reconciler
            rpc_timeout_seconds: Timeout of every chain RPC call
            api_timeout_seconds: Timeout of every REST store call
            offsets: Offsets for schedule anchors that are not set
            api_base_url: REST store root URL (falls back to API_BASE_URL)
            api_key: REST store key (falls back to API_KEY)
            rpc_urls: Chain id to RPC URL overrides

        Raises:
            ConfigurationError: If an interval or timeout is not positive, or an
                offset is negative
        """
        for name, value in (
            ("transition_poll_interval_seconds", transition_poll_interval_seconds),
            ("chain_poll_interval_seconds", chain_poll_interval_seconds),
            ("rpc_timeout_seconds", rpc_timeout_seconds),
            ("api_timeout_seconds", api_timeout_seconds),
        ):
            if value is None or value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        for name in (
            "whitelist_start_before_sale",
            "whitelist_end_before_sale",
            "claim_start_after_sale_end",
            "listing_after_sale_end",
        ):
            if getattr(offsets, name) < timedelta(0):
                raise ConfigurationError(f"Offset {name} cannot be negative")

        self.transition_poll_interval_seconds = transition_poll_interval_seconds
        self.chain_poll_interval_seconds = chain_poll_interval_seconds
        self.rpc_timeout_seconds = rpc_timeout_seconds
        self.api_timeout_seconds = api_timeout_seconds
        self.offsets = offsets
        self.api_base_url = api_base_url
        self.api_key = api_key
        self.rpc_urls = dict(rpc_urls or {})


def parse_rpc_urls(entries) -> Dict[int, str]:
    """
    Parse "<chain id>=<url>" entries.

    Raises:
        ConfigurationError: If an entry is malformed
    """
    rpc_urls = {}
    for entry in entries or []:
        chain_id, sep, url = entry.partition("=")
        if not sep or not url:
            raise ConfigurationError(f"RPC URL must look like <chain id>=<url>, got {entry!r}")
        try:
            rpc_urls[int(chain_id)] = url
        except ValueError:
            raise ConfigurationError(f"Invalid chain id in {entry!r}") from None
    return rpc_urls
