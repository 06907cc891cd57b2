"""
Types, ABI, and EIP-712 definitions for exact mechanism.
"""

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field

from x402_facilitator.utils.eip712 import hex_to_bytes

SCHEME_EXACT = "exact"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


class TransferAuthorization(BaseModel):
    """TransferWithAuthorization parameters"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_address: str = Field(alias="from")
    to: str
    value: str
    valid_after: str = Field(alias="validAfter")
    valid_before: str = Field(alias="validBefore")
    nonce: str  # 32-byte hex string (0x...)


# ---------------------------------------------------------------------------
# EIP-712 type definitions for TransferWithAuthorization
# ---------------------------------------------------------------------------

TRANSFER_AUTH_EIP712_TYPES = {
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}

TRANSFER_AUTH_PRIMARY_TYPE = "TransferWithAuthorization"


# ---------------------------------------------------------------------------
# ABI for transferWithAuthorization
# ---------------------------------------------------------------------------

_TRANSFER_AUTH_INPUTS: List[dict[str, Any]] = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "validAfter", "type": "uint256"},
    {"name": "validBefore", "type": "uint256"},
    {"name": "nonce", "type": "bytes32"},
]

# (v, r, s) variant, for 65-byte ECDSA signatures
TRANSFER_WITH_AUTHORIZATION_VRS_ABI: List[dict[str, Any]] = [
    {
        "inputs": _TRANSFER_AUTH_INPUTS
        + [
            {"name": "v", "type": "uint8"},
            {"name": "r", "type": "bytes32"},
            {"name": "s", "type": "bytes32"},
        ],
        "name": "transferWithAuthorization",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

# bytes signature variant, for smart-account (EIP-1271) signatures
TRANSFER_WITH_AUTHORIZATION_BYTES_ABI: List[dict[str, Any]] = [
    {
        "inputs": _TRANSFER_AUTH_INPUTS + [{"name": "signature", "type": "bytes"}],
        "name": "transferWithAuthorization",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

AUTHORIZATION_STATE_ABI: List[dict[str, Any]] = [
    {
        "inputs": [
            {"name": "authorizer", "type": "address"},
            {"name": "nonce", "type": "bytes32"},
        ],
        "name": "authorizationState",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def build_eip712_message(
    auth: TransferAuthorization,
) -> dict[str, Any]:
    """Build EIP-712 message dict from authorization."""
    return {
        "from": auth.from_address,
        "to": auth.to,
        "value": int(auth.value),
        "validAfter": int(auth.valid_after),
        "validBefore": int(auth.valid_before),
        "nonce": hex_to_bytes(auth.nonce),
    }


def build_eip712_domain(
    token_name: str,
    token_version: str,
    chain_id: int,
    verifying_contract: str,
) -> dict[str, Any]:
    """Build EIP-712 domain dict for exact."""
    return {
        "name": token_name,
        "version": token_version,
        "chainId": chain_id,
        "verifyingContract": verifying_contract,
    }


def split_signature(signature: bytes) -> tuple[int, bytes, bytes]:
    """Split a 65-byte signature into (v, r, s)."""
    if len(signature) != 65:
        raise ValueError(f"Expected 65-byte signature, got {len(signature)}")
    r = signature[:32]
    s = signature[32:64]
    v = signature[64]
    if v < 27:
        v += 27
    return v, r, s
