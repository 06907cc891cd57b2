"""
FacilitatorClient - Client for communicating with facilitator service
"""

from typing import Any

import httpx

from x402_facilitator.exceptions import MalformedRequestError
from x402_facilitator.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedResponse,
    VerifyResponse,
)


class FacilitatorClient:
    """
    Client for communicating with facilitator service.

    Handles verify, settle and supported queries.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize facilitator client.

        Args:
            base_url: Facilitator service base URL
            headers: Custom HTTP headers (e.g., Authorization)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
        """
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "FacilitatorClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @staticmethod
    def _request_body(
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> dict[str, Any]:
        return {
            "paymentPayload": payload.model_dump(by_alias=True, exclude_none=True),
            "paymentRequirements": requirements.model_dump(by_alias=True, exclude_none=True),
        }

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code == 400:
            try:
                message = response.json().get("error", response.text)
            except ValueError:
                message = response.text
            raise MalformedRequestError(message)
        response.raise_for_status()

    async def supported(self) -> SupportedResponse:
        """
        Query facilitator supported capabilities.

        Returns:
            SupportedResponse with supported networks/schemes
        """
        client = await self._get_client()
        response = await client.get("/supported")
        response.raise_for_status()
        return SupportedResponse(**response.json())

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment signature (without executing on-chain transaction).

        Raises:
            MalformedRequestError: The facilitator rejected the request body
            httpx.HTTPStatusError: Any other non-2xx response
        """
        client = await self._get_client()
        response = await client.post("/verify", json=self._request_body(payload, requirements))
        self._raise_for_status(response)
        return VerifyResponse(**response.json())

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement (on-chain transaction).

        Raises:
            MalformedRequestError: The facilitator rejected the request body
            httpx.HTTPStatusError: Any other non-2xx response
        """
        client = await self._get_client()
        response = await client.post("/settle", json=self._request_body(payload, requirements))
        self._raise_for_status(response)
        return SettleResponse(**response.json())
