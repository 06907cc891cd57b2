"""
EVM "exact" payment scheme.
"""

from x402_facilitator.mechanisms.evm.exact.adapter import EvmChainAdapter
from x402_facilitator.mechanisms.evm.exact.facilitator import ExactEvmScheme

__all__ = ["EvmChainAdapter", "ExactEvmScheme"]
