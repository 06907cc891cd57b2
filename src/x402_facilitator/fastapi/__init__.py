"""
FastAPI integration for x402 facilitator
"""

from x402_facilitator.fastapi.app import MISSING_FIELDS_ERROR, create_app

__all__ = ["create_app", "MISSING_FIELDS_ERROR"]
