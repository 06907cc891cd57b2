"""
Token registry - EIP-3009 token metadata used to build EIP-712 domains
"""

from dataclasses import dataclass


@dataclass
class TokenInfo:
    """Token information"""

    address: str
    decimals: int
    name: str
    symbol: str
    version: str = "1"


class TokenRegistry:
    """Token registry"""

    _tokens: dict[str, dict[str, TokenInfo]] = {
        # Base Sepolia (eip155:84532)
        "eip155:84532": {
            "USDC": TokenInfo(
                address="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
                decimals=6,
                name="USDC",
                symbol="USDC",
                version="2",
            ),
        },
        # Ethereum Sepolia (eip155:11155111)
        "eip155:11155111": {
            "USDC": TokenInfo(
                address="0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
                decimals=6,
                name="USDC",
                symbol="USDC",
                version="2",
            ),
        },
        # Arbitrum Sepolia (eip155:421614)
        "eip155:421614": {
            "USDC": TokenInfo(
                address="0x75faf114eafb1BDbe2F0316DF893fd58CE46AA4d",
                decimals=6,
                name="USDC",
                symbol="USDC",
                version="2",
            ),
        },
        # BSC Testnet (eip155:97)
        "eip155:97": {
            "DHLU": TokenInfo(
                address="0x375cADdd2cB68cE82e3D9B075D551067a7b4B816",
                decimals=6,
                name="DA HULU",
                symbol="DHLU",
            ),
        },
    }

    @classmethod
    def find_by_address(cls, network: str, address: str) -> TokenInfo | None:
        """Find token information by address (case-insensitive)"""
        lower = address.lower()
        for info in cls._tokens.get(network, {}).values():
            if info.address.lower() == lower:
                return info
        return None
