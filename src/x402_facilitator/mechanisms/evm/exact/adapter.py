"""
EVM chain adapter for exact.
"""

import re

from x402_facilitator.config import NetworkConfig
from x402_facilitator.mechanisms._exact_base.base import ChainAdapter

_EVM_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


class EvmChainAdapter(ChainAdapter):
    """Chain adapter for EVM-compatible networks (eip155:<chainId>)."""

    def caip_family(self) -> str:
        return "eip155:*"

    def parse_chain_id(self, network: str) -> int:
        return NetworkConfig.get_chain_id(network)

    def validate_network(self, network: str) -> bool:
        return network.startswith("eip155:") and network.split(":", 1)[1].isdigit()

    def validate_address(self, address: str) -> bool:
        return bool(_EVM_ADDRESS.match(address))

    def normalize_address(self, address: str) -> str:
        return address.lower()
