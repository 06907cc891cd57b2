"""
x402 Facilitator core and remote client
"""

from x402_facilitator.facilitator.facilitator_client import FacilitatorClient
from x402_facilitator.facilitator.x402_facilitator import X402Facilitator

__all__ = ["X402Facilitator", "FacilitatorClient"]
