"""
Shared base classes for the "exact" payment scheme.
"""

from x402_facilitator.mechanisms._exact_base.base import (
    ChainAdapter,
    CheckedAuthorization,
    ExactBaseFacilitatorScheme,
)
from x402_facilitator.mechanisms._exact_base.types import (
    AUTHORIZATION_STATE_ABI,
    SCHEME_EXACT,
    TRANSFER_AUTH_EIP712_TYPES,
    TRANSFER_AUTH_PRIMARY_TYPE,
    TRANSFER_WITH_AUTHORIZATION_BYTES_ABI,
    TRANSFER_WITH_AUTHORIZATION_VRS_ABI,
    TransferAuthorization,
    build_eip712_domain,
    build_eip712_message,
    split_signature,
)

__all__ = [
    "ChainAdapter",
    "CheckedAuthorization",
    "ExactBaseFacilitatorScheme",
    "AUTHORIZATION_STATE_ABI",
    "SCHEME_EXACT",
    "TRANSFER_AUTH_EIP712_TYPES",
    "TRANSFER_AUTH_PRIMARY_TYPE",
    "TRANSFER_WITH_AUTHORIZATION_BYTES_ABI",
    "TRANSFER_WITH_AUTHORIZATION_VRS_ABI",
    "TransferAuthorization",
    "build_eip712_domain",
    "build_eip712_message",
    "split_signature",
]
