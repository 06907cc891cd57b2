"""
Base interfaces for facilitator schemes
"""

from x402_facilitator.mechanisms._base.facilitator import FacilitatorScheme

__all__ = ["FacilitatorScheme"]
