"""
Chain client base interface
"""

from abc import ABC, abstractmethod
from typing import Any


class ChainClient(ABC):
    """
    Abstract base class for a signer-capable client bound to one network.

    Implementations wrap a chain's RPC client and the facilitator's account.
    Errors from the underlying call are raised as ``ChainCallFailedError``.
    """

    network: str

    @abstractmethod
    def get_address(self) -> str:
        """Get the facilitator's account address on this chain"""
        pass

    @abstractmethod
    async def get_code(self, address: str) -> bytes:
        """Get deployed bytecode at *address* (empty for EOAs)"""
        pass

    @abstractmethod
    async def read_contract(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> Any:
        """Call a view function"""
        pass

    @abstractmethod
    async def verify_typed_data(
        self,
        address: str,
        domain: dict[str, Any],
        types: dict[str, Any],
        primary_type: str,
        message: dict[str, Any],
        signature: str | bytes,
    ) -> bool:
        """
        Verify an EIP-712 signature for an EOA or a deployed smart account.

        Returns:
            True if signature is valid
        """
        pass

    @abstractmethod
    async def write_contract(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> str:
        """
        Sign and send a contract call.

        Returns:
            Transaction hash (0x-prefixed)
        """
        pass

    @abstractmethod
    async def send_transaction(self, to: str, data: bytes) -> str:
        """
        Sign and send a raw call.

        Returns:
            Transaction hash (0x-prefixed)
        """
        pass

    @abstractmethod
    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: float = 120,
    ) -> dict[str, Any]:
        """
        Wait for transaction confirmation.

        Returns:
            Receipt dict with ``hash``, ``blockNumber`` and ``status``
            (``"confirmed"`` or ``"failed"``)

        Raises:
            TransactionTimeoutError: If no receipt arrives within *timeout*
        """
        pass
