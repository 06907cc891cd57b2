"""
Chain registry - maps network identifiers to configured chain clients
"""

import logging

from x402_facilitator.chains.base import ChainClient
from x402_facilitator.exceptions import DuplicateNetworkError, UnknownNetworkError

logger = logging.getLogger(__name__)


class ChainRegistry:
    """
    Network identifier → ChainClient mapping.

    Populated once at startup and read-only afterwards, so lookups need no lock.
    """

    def __init__(self) -> None:
        self._clients: dict[str, ChainClient] = {}

    def register(self, network: str, client: ChainClient) -> "ChainRegistry":
        """
        Register a client for a network.

        Raises:
            DuplicateNetworkError: If the network is already registered
        """
        if network in self._clients:
            raise DuplicateNetworkError(network)
        self._clients[network] = client
        logger.info("Registered chain client for %s", network)
        return self

    def resolve(self, network: str) -> ChainClient:
        """
        Get the client for a network.

        Raises:
            UnknownNetworkError: If no client is registered for the network
        """
        client = self._clients.get(network)
        if client is None:
            raise UnknownNetworkError(network)
        return client

    def networks(self) -> list[str]:
        """Registered networks in registration order"""
        return list(self._clients)

    def __contains__(self, network: object) -> bool:
        return network in self._clients

    def __len__(self) -> int:
        return len(self._clients)
