"""
Facilitator configuration
Network table plus environment-driven startup settings
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, NamedTuple

from dotenv import load_dotenv

from x402_facilitator.exceptions import ConfigurationError, UnknownNetworkError

logger = logging.getLogger(__name__)


class NetworkInfo(NamedTuple):
    """Static description of a known network"""

    chain_id: int
    name: str
    rpc_env: str
    poa: bool = False


class NetworkConfig:
    """Known networks, keyed by CAIP-2 identifier"""

    BASE_SEPOLIA = "eip155:84532"
    BSC_TESTNET = "eip155:97"
    BSC_MAINNET = "eip155:56"
    ETHEREUM_SEPOLIA = "eip155:11155111"
    ARBITRUM_SEPOLIA = "eip155:421614"

    NETWORKS: Dict[str, NetworkInfo] = {
        "eip155:84532": NetworkInfo(84532, "Base Sepolia", "RPC_BASE_SEPOLIA"),
        "eip155:97": NetworkInfo(97, "BSC Testnet", "RPC_BSC_TESTNET", poa=True),
        "eip155:56": NetworkInfo(56, "BNB Smart Chain", "RPC_BSC_MAINNET", poa=True),
        "eip155:11155111": NetworkInfo(11155111, "Ethereum Sepolia", "RPC_ETHEREUM_SEPOLIA"),
        "eip155:421614": NetworkInfo(421614, "Arbitrum Sepolia", "RPC_ARBITRUM_SEPOLIA"),
    }

    @classmethod
    def get(cls, network: str) -> NetworkInfo:
        """Get network info

        Raises:
            UnknownNetworkError: If network is not in the table
        """
        info = cls.NETWORKS.get(network)
        if info is None:
            raise UnknownNetworkError(network)
        return info

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        """Get chain ID for network

        EVM networks encode the chain ID directly in the identifier, so unknown
        ``eip155:<id>`` networks still resolve.
        """
        if network.startswith("eip155:"):
            try:
                return int(network.split(":", 1)[1])
            except (ValueError, IndexError):
                raise UnknownNetworkError(network)
        return cls.get(network).chain_id


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


@dataclass
class FacilitatorConfig:
    """Startup settings for the facilitator service"""

    private_key: str
    rpc_urls: dict[str, str] = field(default_factory=dict)
    default_network: str = NetworkConfig.BASE_SEPOLIA
    host: str = "0.0.0.0"
    port: int = 4022
    verification_timeout: int = 300
    settle_timeout: int = 120
    receipt_timeout: int = 120
    deploy_erc4337_with_eip6492: bool = True
    log_level: str = "INFO"

    @property
    def networks(self) -> list[str]:
        """Enabled networks (those with an RPC endpoint)"""
        return list(self.rpc_urls)

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        dotenv_path: str | Path | None = None,
    ) -> "FacilitatorConfig":
        """Build configuration from environment variables.

        A missing ``EVM_PRIVATE_KEY`` is fatal. A missing per-network RPC variable
        only disables that network.

        Args:
            env: Mapping to read from (defaults to ``os.environ``)
            dotenv_path: Optional .env file loaded into the process environment first

        Raises:
            ConfigurationError: On missing credential or invalid values
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = os.environ

        private_key = env.get("EVM_PRIVATE_KEY", "")
        if not private_key:
            raise ConfigurationError("EVM_PRIVATE_KEY environment variable is required")

        rpc_urls: dict[str, str] = {}
        for network, info in NetworkConfig.NETWORKS.items():
            url = env.get(info.rpc_env)
            if url:
                rpc_urls[network] = url
            else:
                logger.warning(
                    "%s not set, disabling %s (%s)", info.rpc_env, info.name, network
                )

        if not rpc_urls:
            raise ConfigurationError("No RPC endpoint configured for any network")

        default_network = env.get("DEFAULT_NETWORK") or NetworkConfig.BASE_SEPOLIA
        if default_network not in rpc_urls:
            fallback = next(iter(rpc_urls))
            logger.warning(
                "Default network %s is not enabled, using %s", default_network, fallback
            )
            default_network = fallback

        return cls(
            private_key=private_key,
            rpc_urls=rpc_urls,
            default_network=default_network,
            host=env.get("HOST") or "0.0.0.0",
            port=_env_int(env, "PORT", 4022),
            verification_timeout=_env_int(env, "VERIFICATION_TIMEOUT_SECONDS", 300),
            settle_timeout=_env_int(env, "SETTLE_TIMEOUT_SECONDS", 120),
            receipt_timeout=_env_int(env, "RECEIPT_TIMEOUT_SECONDS", 120),
            deploy_erc4337_with_eip6492=_env_bool(env.get("DEPLOY_ERC4337_WITH_EIP6492"), True),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
