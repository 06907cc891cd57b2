"""
ERC-6492 counterfactual signature helpers

A wrapped signature is ``abi.encode(factory, factoryCalldata, innerSignature)``
followed by the 32-byte magic suffix.
"""

from dataclasses import dataclass

from eth_abi import decode, encode
from eth_utils import to_checksum_address

from x402_facilitator.utils.eip712 import hex_to_bytes

ERC6492_MAGIC_VALUE = bytes.fromhex("64926492" * 8)
EIP1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")


@dataclass(frozen=True)
class ERC6492Signature:
    """Unwrapped ERC-6492 signature"""

    factory: str
    factory_calldata: bytes
    inner_signature: bytes


def is_erc6492_signature(signature: str | bytes) -> bool:
    sig = hex_to_bytes(signature)
    return len(sig) > 32 and sig[-32:] == ERC6492_MAGIC_VALUE


def parse_erc6492_signature(signature: str | bytes) -> ERC6492Signature:
    """Unwrap an ERC-6492 signature.

    Raises:
        ValueError: If the signature is not ERC-6492 wrapped or cannot be decoded
    """
    sig = hex_to_bytes(signature)
    if not is_erc6492_signature(sig):
        raise ValueError("Not an ERC-6492 signature")
    factory, calldata, inner = decode(["address", "bytes", "bytes"], sig[:-32])
    return ERC6492Signature(
        factory=to_checksum_address(factory),
        factory_calldata=bytes(calldata),
        inner_signature=bytes(inner),
    )


def wrap_erc6492_signature(factory: str, factory_calldata: bytes, inner_signature: bytes) -> bytes:
    """Wrap a signature for an undeployed account."""
    body = encode(
        ["address", "bytes", "bytes"],
        [to_checksum_address(factory), factory_calldata, inner_signature],
    )
    return body + ERC6492_MAGIC_VALUE
