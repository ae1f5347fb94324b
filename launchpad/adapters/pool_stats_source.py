"""
Interface for reading funding statistics of an IDO pool contract.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Dict, Optional

import requests
from bittensor.utils.btlogging import logging
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from launchpad.constants import DEFAULT_RPC_TIMEOUT_SECONDS
from launchpad.domain.campaign import PoolStats
from launchpad.errors import ChainUnavailableError

# Read-only subset of the IDO pool ABI; participantCount is not implemented by every pool
IDO_POOL_ABI = [
    {
        "name": "totalRaised",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "hardCap",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "participantCount",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class IPoolStatsSource(ABC):
    """Interface for the chain-read collaborator."""

    @abstractmethod
    def get_pool_stats(self, contract_address: str, chain_id: int) -> PoolStats:
        """
        Read funding statistics of a pool.

        Args:
            contract_address: Pool contract address
            chain_id: Chain the pool is deployed on

        Returns:
            PoolStats with amounts in whole native units

        Raises:
            ChainUnavailableError: On RPC failure or timeout
        """
        pass


class Web3PoolStatsSource(IPoolStatsSource):
    """
    Pool stats source reading contracts over JSON-RPC with web3.

    Keeps one Web3 client per chain; every request carries the configured timeout.
    """

    def __init__(
        self,
        rpc_url_resolver: Callable[[int], Optional[str]],
        timeout: float = DEFAULT_RPC_TIMEOUT_SECONDS,
    ):
        """
        Initialize pool stats source.

        Args:
            rpc_url_resolver: Callable mapping a chain id to its RPC URL (None if unsupported)
            timeout: Timeout in seconds for every RPC request
        """
        self.rpc_url_resolver = rpc_url_resolver
        self.timeout = timeout
        self.web3_clients: Dict[int, Web3] = {}

    def get_web3(self, chain_id: int) -> Web3:
        """
        Get or create the Web3 client for a chain.

        Raises:
            ChainUnavailableError: If no RPC URL is configured for the chain
        """
        if chain_id not in self.web3_clients:
            rpc_url = self.rpc_url_resolver(chain_id)
            if not rpc_url:
                raise ChainUnavailableError(f"No RPC URL configured for chain {chain_id}")
            self.web3_clients[chain_id] = Web3(
                Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": self.timeout})
            )
            logging.debug(f"Created web3 client for chain {chain_id}")
        return self.web3_clients[chain_id]

    def _read_participant_count(self, pool, contract_address: str) -> Optional[int]:
        """participantCount() is optional; pools without it report None."""
        try:
            return int(pool.functions.participantCount().call())
        except (ContractLogicError, BadFunctionCallOutput) as e:
            logging.debug(f"Pool {contract_address} has no participantCount(): {e}")
            return None

    def get_pool_stats(self, contract_address: str, chain_id: int) -> PoolStats:
        w3 = self.get_web3(chain_id)
        try:
            pool = w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=IDO_POOL_ABI)
            total_raised = pool.functions.totalRaised().call()
            hard_cap = pool.functions.hardCap().call()
            participant_count = self._read_participant_count(pool, contract_address)
        except (Web3Exception, requests.exceptions.RequestException, TimeoutError, ValueError) as e:
            raise ChainUnavailableError(
                f"Failed to read pool {contract_address} on chain {chain_id}: {e}"
            ) from e

        return PoolStats(
            total_raised=Decimal(Web3.from_wei(total_raised, "ether")),
            hard_cap=Decimal(Web3.from_wei(hard_cap, "ether")),
            participant_count=participant_count,
        )
