"""
Facilitator Signers
"""

from x402_facilitator.signers.facilitator.base import FacilitatorSigner
from x402_facilitator.signers.facilitator.evm_signer import EvmFacilitatorSigner

__all__ = ["FacilitatorSigner", "EvmFacilitatorSigner"]
