"""
FastAPI application exposing a facilitator over HTTP

Endpoints:
    GET  /           service info
    GET  /supported  supported (scheme, network) kinds
    POST /verify     {paymentPayload, paymentRequirements} -> VerifyResponse
    POST /settle     {paymentPayload, paymentRequirements} -> SettleResponse
"""

import logging
import time
from typing import Any, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from x402_facilitator.exceptions import (
    MalformedRequestError,
    abort_reason,
    is_settlement_abort,
)
from x402_facilitator.facilitator.x402_facilitator import X402Facilitator
from x402_facilitator.types import PaymentPayload, PaymentRequirements, SettleResponse

logger = logging.getLogger(__name__)

MISSING_FIELDS_ERROR = "Missing paymentPayload or paymentRequirements"


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _parse_request(request: Request) -> tuple[PaymentPayload, PaymentRequirements]:
    """Read and validate a verify/settle request body.

    Raises:
        MalformedRequestError: Body is not JSON, a field is missing or invalid
    """
    try:
        body = await request.json()
    except ValueError:
        raise MalformedRequestError("Request body must be valid JSON")

    if not isinstance(body, dict):
        raise MalformedRequestError(MISSING_FIELDS_ERROR)
    raw_payload = body.get("paymentPayload")
    raw_requirements = body.get("paymentRequirements")
    if not raw_payload or not raw_requirements:
        raise MalformedRequestError(MISSING_FIELDS_ERROR)

    try:
        payload = PaymentPayload.model_validate(raw_payload)
        requirements = PaymentRequirements.model_validate(raw_requirements)
    except ValidationError as e:
        raise MalformedRequestError(f"Invalid request: {e.errors(include_url=False)}")
    return payload, requirements


def create_app(
    facilitator: X402Facilitator,
    title: str = "X402 Facilitator",
    cors_origins: list[str] | None = None,
    lifespan: Any = None,
) -> FastAPI:
    """
    Build the facilitator HTTP app.

    Args:
        facilitator: Configured facilitator (schemes and hooks registered)
        title: OpenAPI title
        cors_origins: Allowed CORS origins (defaults to all)
        lifespan: Optional FastAPI lifespan context (e.g. to run the sweeper)

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title=title,
        description="Facilitator service for x402 payment protocol",
        version="2.0.0",
        lifespan=lifespan,
    )
    app.state.facilitator = facilitator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Service info endpoint"""
        supported = facilitator.get_supported()
        return {
            "service": title,
            "status": "running",
            "networks": sorted({kind.network for kind in supported.kinds}),
            "signers": supported.signers,
        }

    @app.get("/supported")
    async def supported() -> JSONResponse:
        """Get supported capabilities"""
        return JSONResponse(content=_dump(facilitator.get_supported()))

    @app.post("/verify")
    async def verify(request: Request) -> JSONResponse:
        """Verify payment payload without moving funds"""
        try:
            payload, requirements = await _parse_request(request)
        except MalformedRequestError as e:
            return _error(400, str(e))

        try:
            result = await facilitator.verify(payload, requirements)
        except Exception as e:
            logger.error("Verify error: %s", e)
            return _error(500, str(e))
        return JSONResponse(content=_dump(result))

    @app.post("/settle")
    async def settle(request: Request) -> JSONResponse:
        """Settle payment on-chain"""
        try:
            payload, requirements = await _parse_request(request)
        except MalformedRequestError as e:
            return _error(400, str(e))

        try:
            result = await facilitator.settle(payload, requirements)
        except Exception as e:
            if is_settlement_abort(e):
                # Policy abort, not a server error
                result = SettleResponse(
                    success=False,
                    errorReason=abort_reason(e),
                    network=requirements.network,
                )
            else:
                logger.error("Settle error: %s", e)
                return _error(500, str(e))
        return JSONResponse(content=_dump(result))

    return app
