"""
Type definitions for the x402 facilitator
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

X402_VERSION = 2


class PaymentRequirementsExtra(BaseModel):
    """Extra information in payment requirements (EIP-712 token domain, extensions)"""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: Optional[str] = None
    version: Optional[str] = None


class PaymentRequirements(BaseModel):
    """Payment terms demanded by the resource owner"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    scheme: str
    network: str
    amount: str
    asset: str
    pay_to: str = Field(alias="payTo")
    max_timeout_seconds: Optional[int] = Field(None, alias="maxTimeoutSeconds")
    extra: Optional[PaymentRequirementsExtra] = None


class ResourceInfo(BaseModel):
    """Resource information"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")


class PaymentPayloadData(BaseModel):
    """Scheme-specific signed material.

    For ``exact`` this is the EIP-3009 authorization plus its signature.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    signature: str
    authorization: Optional[dict[str, Any]] = None


class PaymentPayload(BaseModel):
    """Signed payment payload presented by the payer"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    x402_version: int = Field(X402_VERSION, alias="x402Version")
    resource: Optional[ResourceInfo] = None
    accepted: PaymentRequirements
    payload: PaymentPayloadData
    extensions: Optional[dict[str, Any]] = None

    @property
    def scheme(self) -> str:
        return self.accepted.scheme

    @property
    def network(self) -> str:
        return self.accepted.network


class VerifyResponse(BaseModel):
    """Verification response from facilitator"""

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    invalid_reason: Optional[str] = Field(None, alias="invalidReason")
    payer: Optional[str] = None


class SettleResponse(BaseModel):
    """Settlement response from facilitator"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    error_reason: Optional[str] = Field(None, alias="errorReason")
    payer: Optional[str] = None
    transaction: str = ""
    network: str


class SupportedKind(BaseModel):
    """Supported (scheme, network) pair"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    x402_version: int = Field(alias="x402Version")
    scheme: str
    network: str
    extra: Optional[dict[str, Any]] = None


class SupportedResponse(BaseModel):
    """Supported response from facilitator"""

    model_config = ConfigDict(populate_by_name=True)

    kinds: list[SupportedKind]
    extensions: list[str] = Field(default_factory=list)
    signers: dict[str, list[str]] = Field(default_factory=dict)
