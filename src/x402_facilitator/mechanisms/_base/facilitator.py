"""
Facilitator scheme base interface
"""

from abc import ABC, abstractmethod
from typing import Any

from x402_facilitator.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
)


class FacilitatorScheme(ABC):
    """
    Abstract base class for facilitator payment schemes.

    One implementation per payment kind. ``validate`` checks a payload against
    requirements without moving funds; ``execute`` performs the settlement.
    Neither raises for predictable failures; both return response values.
    """

    @abstractmethod
    def scheme(self) -> str:
        """Get the payment scheme name"""
        pass

    @abstractmethod
    def caip_family(self) -> str:
        """CAIP-2 family this scheme serves (e.g. ``"eip155:*"``)"""
        pass

    def get_extra(self, network: str) -> dict[str, Any] | None:
        """Extra data advertised for *network* in /supported"""
        return None

    def get_signers(self) -> list[str]:
        """Addresses this scheme settles from"""
        return []

    @abstractmethod
    async def validate(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment authorization (without executing on-chain transaction).

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            VerifyResponse
        """
        pass

    @abstractmethod
    async def execute(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement (on-chain transaction).

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            SettleResponse with transaction hash
        """
        pass
