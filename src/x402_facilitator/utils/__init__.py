"""
x402 facilitator utility functions
"""

from x402_facilitator.utils.eip712 import (
    eip712_domain_type_from_keys,
    encode_typed,
    hex_to_bytes,
    typed_data_digest,
)
from x402_facilitator.utils.erc6492 import (
    EIP1271_MAGIC_VALUE,
    ERC6492_MAGIC_VALUE,
    ERC6492Signature,
    is_erc6492_signature,
    parse_erc6492_signature,
    wrap_erc6492_signature,
)

__all__ = [
    "eip712_domain_type_from_keys",
    "encode_typed",
    "hex_to_bytes",
    "typed_data_digest",
    # ERC-6492 / EIP-1271
    "EIP1271_MAGIC_VALUE",
    "ERC6492_MAGIC_VALUE",
    "ERC6492Signature",
    "is_erc6492_signature",
    "parse_erc6492_signature",
    "wrap_erc6492_signature",
]
