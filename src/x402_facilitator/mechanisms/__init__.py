"""
x402 Mechanisms - Payment schemes for different chains

Structure:
    _base/          - ABC interface (FacilitatorScheme)
    _exact_base/    - Shared base classes for "exact" scheme
    evm/            - EVM chain implementations
        exact/      - exact scheme (adapter, facilitator)
"""

from x402_facilitator.mechanisms import evm
from x402_facilitator.mechanisms._base import FacilitatorScheme
from x402_facilitator.mechanisms._exact_base import ChainAdapter, ExactBaseFacilitatorScheme
from x402_facilitator.mechanisms.evm import EvmChainAdapter, ExactEvmScheme

__all__ = [
    # Base interface
    "FacilitatorScheme",
    # Exact base
    "ChainAdapter",
    "ExactBaseFacilitatorScheme",
    # EVM
    "EvmChainAdapter",
    "ExactEvmScheme",
    # Subpackages
    "evm",
]
