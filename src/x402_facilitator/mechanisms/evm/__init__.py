"""
EVM mechanism implementations.
"""

from x402_facilitator.mechanisms.evm.exact import EvmChainAdapter, ExactEvmScheme

__all__ = ["EvmChainAdapter", "ExactEvmScheme"]
