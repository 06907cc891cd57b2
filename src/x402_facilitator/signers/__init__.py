"""
x402 facilitator signers
"""

from x402_facilitator.signers.facilitator import EvmFacilitatorSigner, FacilitatorSigner

__all__ = ["FacilitatorSigner", "EvmFacilitatorSigner"]
