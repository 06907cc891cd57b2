"""
EIP-712 typed data helpers
"""

from typing import Any

from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import keccak

# Canonical EIP-712 domain field order and types
_EIP712_DOMAIN_FIELDS: list[tuple[str, str]] = [
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
    ("salt", "bytes32"),
]


def eip712_domain_type_from_keys(domain: dict[str, Any]) -> list[dict[str, str]]:
    """Build an EIP712Domain type array from the keys present in *domain*.

    Preserves the canonical field order defined in EIP-712.
    """
    return [{"name": name, "type": typ} for name, typ in _EIP712_DOMAIN_FIELDS if name in domain]


def encode_typed(
    domain: dict[str, Any],
    types: dict[str, Any],
    primary_type: str,
    message: dict[str, Any],
) -> SignableMessage:
    """Encode typed data into an EIP-191 signable message."""
    full_types = dict(types)
    full_types.setdefault("EIP712Domain", eip712_domain_type_from_keys(domain))
    return encode_typed_data(
        full_message={
            "types": full_types,
            "primaryType": primary_type,
            "domain": domain,
            "message": message,
        }
    )


def typed_data_digest(
    domain: dict[str, Any],
    types: dict[str, Any],
    primary_type: str,
    message: dict[str, Any],
) -> bytes:
    """32-byte EIP-712 digest, as passed to EIP-1271 ``isValidSignature``."""
    signable = encode_typed(domain, types, primary_type, message)
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def hex_to_bytes(value: str | bytes) -> bytes:
    """Decode a hex string with or without 0x prefix."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)
