"""
Pytest configuration and fixtures
"""

import time
from typing import Any

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from x402_facilitator.mechanisms._exact_base.types import (
    TRANSFER_AUTH_EIP712_TYPES,
    TRANSFER_AUTH_PRIMARY_TYPE,
)
from x402_facilitator.types import (
    PaymentPayload,
    PaymentPayloadData,
    PaymentRequirements,
    ResourceInfo,
)

# Base Sepolia USDC
USDC_ADDRESS = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
MERCHANT_ADDRESS = "0x209693Bc6afc0C5328bA36FaF03C514EF312287C"
FACILITATOR_ADDRESS = "0xFCAd0B19bB29D4674531d6f115237E16AfCE377c"
BASE_SEPOLIA = "eip155:84532"

BUYER_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
BUYER_ADDRESS = Account.from_key(BUYER_PRIVATE_KEY).address


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def mock_evm_private_key():
    """Mock EVM private key for testing"""
    return "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"


@pytest.fixture
def requirements():
    """Base Sepolia USDC payment requirements"""
    return make_requirements()


def make_requirements(
    amount: str = "100",
    network: str = BASE_SEPOLIA,
    scheme: str = "exact",
    pay_to: str = MERCHANT_ADDRESS,
) -> PaymentRequirements:
    return PaymentRequirements(
        scheme=scheme,
        network=network,
        amount=amount,
        asset=USDC_ADDRESS,
        payTo=pay_to,
        maxTimeoutSeconds=3600,
        extra={"name": "USDC", "version": "2"},
    )


def make_authorization(
    requirements: PaymentRequirements,
    value: str | None = None,
    nonce: str | None = None,
    valid_after: int | None = None,
    valid_before: int | None = None,
    from_addr: str = BUYER_ADDRESS,
    to_addr: str | None = None,
) -> dict[str, Any]:
    now = int(time.time())
    return {
        "from": from_addr,
        "to": to_addr or requirements.pay_to,
        "value": value or requirements.amount,
        "validAfter": str(valid_after if valid_after is not None else now - 30),
        "validBefore": str(valid_before if valid_before is not None else now + 3600),
        "nonce": nonce or ("0x" + "cd" * 32),
    }


def make_payload(
    requirements: PaymentRequirements,
    signature: str = "0x" + "ab" * 65,
    accepted: PaymentRequirements | None = None,
    **auth_kwargs: Any,
) -> PaymentPayload:
    return PaymentPayload(
        x402Version=2,
        resource=ResourceInfo(url="https://example.com/weather"),
        accepted=accepted or requirements,
        payload=PaymentPayloadData(
            signature=signature,
            authorization=make_authorization(requirements, **auth_kwargs),
        ),
    )


def sign_authorization(
    requirements: PaymentRequirements,
    authorization: dict[str, Any],
    private_key: str = BUYER_PRIVATE_KEY,
) -> str:
    """Sign a TransferWithAuthorization the way a paying client does"""
    typed_data = {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            **TRANSFER_AUTH_EIP712_TYPES,
        },
        "primaryType": TRANSFER_AUTH_PRIMARY_TYPE,
        "domain": {
            "name": "USDC",
            "version": "2",
            "chainId": int(requirements.network.split(":")[1]),
            "verifyingContract": requirements.asset,
        },
        "message": {
            "from": authorization["from"],
            "to": authorization["to"],
            "value": int(authorization["value"]),
            "validAfter": int(authorization["validAfter"]),
            "validBefore": int(authorization["validBefore"]),
            "nonce": bytes.fromhex(authorization["nonce"][2:]),
        },
    }
    signed = Account.sign_message(encode_typed_data(full_message=typed_data), private_key)
    return "0x" + signed.signature.hex().removeprefix("0x")
