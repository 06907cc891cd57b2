"""
EvmFacilitatorSigner - multi-chain EVM facilitator signer
"""

import logging
from typing import Any

from x402_facilitator.chains.base import ChainClient
from x402_facilitator.chains.registry import ChainRegistry
from x402_facilitator.exceptions import ChainCallFailedError
from x402_facilitator.signers.facilitator.base import FacilitatorSigner

logger = logging.getLogger(__name__)


class EvmFacilitatorSigner(FacilitatorSigner):
    """
    Facilitator signer that routes every call to a per-network chain client.

    Writes always name their network and resolve it through the registry.
    Read-only calls without a network go to ``default_network``: generic
    signature checks and code lookups are answered by one fixed chain unless
    the caller says otherwise.
    """

    def __init__(
        self,
        registry: ChainRegistry,
        default_network: str,
        receipt_timeout: float = 120,
    ) -> None:
        # Fail fast if the default chain is not configured
        registry.resolve(default_network)
        self._registry = registry
        self._default_network = default_network
        self._receipt_timeout = receipt_timeout

    @property
    def default_network(self) -> str:
        return self._default_network

    def get_addresses(self) -> list[str]:
        addresses: list[str] = []
        for network in self._registry.networks():
            address = self._registry.resolve(network).get_address()
            if address not in addresses:
                addresses.append(address)
        return addresses

    def _client(self, network: str | None) -> ChainClient:
        return self._registry.resolve(network or self._default_network)

    async def get_code(self, address: str, network: str | None = None) -> bytes:
        client = self._client(network)
        try:
            return await client.get_code(address)
        except ChainCallFailedError:
            raise
        except Exception as e:
            raise ChainCallFailedError(client.network, e) from e

    async def read_contract(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
        network: str | None = None,
    ) -> Any:
        client = self._client(network)
        try:
            return await client.read_contract(address, abi, function_name, args)
        except ChainCallFailedError:
            raise
        except Exception as e:
            raise ChainCallFailedError(client.network, e) from e

    async def verify_typed_data(
        self,
        address: str,
        domain: dict[str, Any],
        types: dict[str, Any],
        primary_type: str,
        message: dict[str, Any],
        signature: str | bytes,
        network: str | None = None,
    ) -> bool:
        client = self._client(network)
        try:
            return await client.verify_typed_data(
                address, domain, types, primary_type, message, signature
            )
        except ChainCallFailedError:
            raise
        except Exception as e:
            raise ChainCallFailedError(client.network, e) from e

    async def write_contract(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
        network: str,
    ) -> str:
        client = self._registry.resolve(network)
        logger.info(
            "Writing %s on %s",
            function_name,
            network,
            extra={"contract": address, "network": network},
        )
        try:
            return await client.write_contract(address, abi, function_name, args)
        except ChainCallFailedError:
            raise
        except Exception as e:
            raise ChainCallFailedError(network, e) from e

    async def send_transaction(self, to: str, data: bytes, network: str) -> str:
        client = self._registry.resolve(network)
        try:
            return await client.send_transaction(to, data)
        except ChainCallFailedError:
            raise
        except Exception as e:
            raise ChainCallFailedError(network, e) from e

    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        network: str,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        client = self._registry.resolve(network)
        try:
            return await client.wait_for_transaction_receipt(
                tx_hash, timeout=timeout if timeout is not None else self._receipt_timeout
            )
        except ChainCallFailedError:
            raise
        except Exception as e:
            raise ChainCallFailedError(network, e) from e
