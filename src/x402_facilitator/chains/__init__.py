"""
Chain clients and network routing
"""

from x402_facilitator.chains.base import ChainClient
from x402_facilitator.chains.evm import Web3ChainClient
from x402_facilitator.chains.registry import ChainRegistry

__all__ = ["ChainClient", "ChainRegistry", "Web3ChainClient"]
