"""
Tests for the facilitator HTTP app.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import BASE_SEPOLIA, BUYER_ADDRESS, FACILITATOR_ADDRESS, make_payload, make_requirements
from fastapi.testclient import TestClient

from x402_facilitator.exceptions import SettlementAbortedError
from x402_facilitator.facilitator import X402Facilitator
from x402_facilitator.fastapi import MISSING_FIELDS_ERROR, create_app
from x402_facilitator.tracking import VerificationTracker
from x402_facilitator.types import SettleResponse, VerifyResponse


@pytest.fixture
def scheme():
    scheme = MagicMock()
    scheme.scheme.return_value = "exact"
    scheme.caip_family.return_value = "eip155:*"
    scheme.get_extra.return_value = None
    scheme.get_signers.return_value = [FACILITATOR_ADDRESS]
    scheme.validate = AsyncMock(return_value=VerifyResponse(isValid=True, payer=BUYER_ADDRESS))
    scheme.execute = AsyncMock(
        return_value=SettleResponse(
            success=True, payer=BUYER_ADDRESS, transaction="0xtx", network=BASE_SEPOLIA
        )
    )
    return scheme


@pytest.fixture
def facilitator(scheme):
    facilitator = X402Facilitator().register([BASE_SEPOLIA], scheme)
    VerificationTracker().attach(facilitator)
    return facilitator


@pytest.fixture
def client(facilitator):
    return TestClient(create_app(facilitator))


@pytest.fixture
def body():
    requirements = make_requirements()
    payload = make_payload(requirements)
    return {
        "paymentPayload": payload.model_dump(by_alias=True, exclude_none=True),
        "paymentRequirements": requirements.model_dump(by_alias=True, exclude_none=True),
    }


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["networks"] == [BASE_SEPOLIA]


def test_supported(client):
    response = client.get("/supported")
    assert response.status_code == 200
    data = response.json()
    assert data["kinds"] == [{"x402Version": 2, "scheme": "exact", "network": BASE_SEPOLIA}]
    assert data["signers"] == {"eip155:*": [FACILITATOR_ADDRESS]}
    assert data["extensions"] == []


def test_verify(client, body):
    response = client.post("/verify", json=body)
    assert response.status_code == 200
    assert response.json() == {"isValid": True, "payer": BUYER_ADDRESS}


def test_verify_invalid_is_200(client, scheme, body):
    scheme.validate.return_value = VerifyResponse(isValid=False, invalidReason="expired")
    response = client.post("/verify", json=body)
    assert response.status_code == 200
    assert response.json() == {"isValid": False, "invalidReason": "expired"}


@pytest.mark.parametrize("missing", ["paymentPayload", "paymentRequirements"])
def test_missing_field(client, body, missing):
    del body[missing]
    for path in ("/verify", "/settle"):
        response = client.post(path, json=body)
        assert response.status_code == 400
        assert response.json() == {"error": MISSING_FIELDS_ERROR}


def test_invalid_model(client, body):
    del body["paymentRequirements"]["payTo"]
    response = client.post("/verify", json=body)
    assert response.status_code == 400
    assert "error" in response.json()


def test_invalid_json(client):
    response = client.post(
        "/verify", content=b"{not json", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400


def test_verify_unexpected_error(client, scheme, body):
    scheme.validate.side_effect = RuntimeError("database exploded")
    response = client.post("/verify", json=body)
    assert response.status_code == 500
    assert response.json() == {"error": "database exploded"}


def test_settle_after_verify(client, body):
    assert client.post("/verify", json=body).json()["isValid"] is True

    response = client.post("/settle", json=body)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "payer": BUYER_ADDRESS,
        "transaction": "0xtx",
        "network": BASE_SEPOLIA,
    }


def test_settle_without_verify_is_200_failure(client, scheme, body):
    response = client.post("/settle", json=body)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["errorReason"] == "payment_not_verified"
    assert data["network"] == BASE_SEPOLIA
    scheme.execute.assert_not_called()


def test_settle_escaped_abort_is_200(client, scheme, body):
    scheme.execute.side_effect = SettlementAbortedError("sanctioned_payer")
    client.post("/verify", json=body)

    response = client.post("/settle", json=body)

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "errorReason": "sanctioned_payer",
        "transaction": "",
        "network": BASE_SEPOLIA,
    }


def test_settle_unexpected_error(client, scheme, body):
    scheme.execute.side_effect = RuntimeError("boom")
    client.post("/verify", json=body)

    response = client.post("/settle", json=body)

    assert response.status_code == 500
    assert response.json() == {"error": "boom"}
