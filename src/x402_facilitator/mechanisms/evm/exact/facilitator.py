"""
ExactEvmScheme - exact facilitator scheme for EVM.
"""

import time
from typing import TYPE_CHECKING, Callable

from x402_facilitator.mechanisms._exact_base.base import ExactBaseFacilitatorScheme
from x402_facilitator.mechanisms.evm.exact.adapter import EvmChainAdapter

if TYPE_CHECKING:
    from x402_facilitator.signers.facilitator import FacilitatorSigner


class ExactEvmScheme(ExactBaseFacilitatorScheme):
    """TransferWithAuthorization facilitator scheme for EVM."""

    def __init__(
        self,
        signer: "FacilitatorSigner",
        deploy_erc4337_with_eip6492: bool = False,
        allowed_tokens: set[str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(
            signer,
            EvmChainAdapter(),
            deploy_erc4337_with_eip6492=deploy_erc4337_with_eip6492,
            allowed_tokens=allowed_tokens,
            clock=clock,
        )
