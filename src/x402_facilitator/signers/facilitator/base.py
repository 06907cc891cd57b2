"""
Facilitator signer base interface
"""

from abc import ABC, abstractmethod
from typing import Any


class FacilitatorSigner(ABC):
    """
    Abstract base class for facilitator signers.

    Exposes the same capability surface for every chain. Chain-specific
    operations take an explicit network identifier; read-only operations fall
    back to the signer's default network when none is given.
    """

    @abstractmethod
    def get_addresses(self) -> list[str]:
        """Get the facilitator's account addresses"""
        pass

    @abstractmethod
    async def get_code(self, address: str, network: str | None = None) -> bytes:
        """Get bytecode at *address* (empty for EOAs)"""
        pass

    @abstractmethod
    async def read_contract(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
        network: str | None = None,
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
        network: str | None = None,
    ) -> bool:
        """
        Verify EIP-712 typed data signature.

        Args:
            address: Expected signer address
            domain: EIP-712 domain
            types: Type definitions
            primary_type: Primary type name
            message: Signed message
            signature: Signature to verify
            network: Network to use for contract-account checks

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
        network: str,
    ) -> str:
        """
        Execute a contract write transaction.

        Returns:
            Transaction hash
        """
        pass

    @abstractmethod
    async def send_transaction(self, to: str, data: bytes, network: str) -> str:
        """
        Send a raw transaction.

        Returns:
            Transaction hash
        """
        pass

    @abstractmethod
    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        network: str,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Wait for transaction confirmation.

        Returns:
            Transaction receipt
        """
        pass
