"""
Resolvers for launchpad configuration.

This module contains resolvers that map a chain to its configuration values.
"""
import os
from typing import Dict, Optional

from launchpad.constants import DEFAULT_RPC_URLS, RPC_URL_ENV_PREFIX


class RpcUrlResolver:
    """
    Resolves the JSON-RPC endpoint for a given chain id.

    Precedence: explicit mapping, then the RPC_URL_<chain id> environment
    variable, then the built-in defaults.
    """

    def __init__(self, chain_to_url: Optional[Dict[int, str]] = None, use_defaults: bool = True):
        """
        Initialize RPC URL resolver.

        Args:
            chain_to_url: Dictionary mapping chain ids to RPC URLs
            use_defaults: Whether to fall back to the public endpoints in constants
        """
        self.chain_to_url = dict(chain_to_url or {})
        self.use_defaults = use_defaults

    def __call__(self, chain_id: int) -> Optional[str]:
        """
        Resolve the RPC URL for a chain.

        Args:
            chain_id: EVM chain id

        Returns:
            RPC URL, or None if the chain is not configured
        """
        if chain_id in self.chain_to_url:
            return self.chain_to_url[chain_id]
        env_url = os.getenv(f"{RPC_URL_ENV_PREFIX}{chain_id}")
        if env_url:
            return env_url
        if self.use_defaults:
            return DEFAULT_RPC_URLS.get(chain_id)
        return None
