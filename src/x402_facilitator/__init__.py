"""
x402_facilitator - x402 payment facilitator for EVM chains

Verifies signed payment payloads, settles them on-chain, and guarantees that
every settlement is backed by exactly one fresh verification.
"""

__version__ = "0.1.0"

from x402_facilitator.exceptions import (
    ChainCallFailedError,
    ConfigurationError,
    DuplicateNetworkError,
    MalformedRequestError,
    SchemeAlreadyRegisteredError,
    SchemeNotFoundError,
    SettlementAbortedError,
    TransactionTimeoutError,
    UnknownNetworkError,
    ValidationFailedError,
    X402Error,
)
from x402_facilitator.facilitator import FacilitatorClient, X402Facilitator
from x402_facilitator.hooks import AbortResult, HookEvent, LifecycleHookBus
from x402_facilitator.tokens import TokenInfo, TokenRegistry
from x402_facilitator.tracking import (
    InMemoryVerificationStore,
    VerificationRecord,
    VerificationStore,
    VerificationTracker,
)
from x402_facilitator.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

__all__ = [
    "__version__",
    # Core
    "X402Facilitator",
    "FacilitatorClient",
    # Hooks and tracking
    "AbortResult",
    "HookEvent",
    "LifecycleHookBus",
    "VerificationRecord",
    "VerificationStore",
    "InMemoryVerificationStore",
    "VerificationTracker",
    # Types
    "PaymentPayload",
    "PaymentRequirements",
    "VerifyResponse",
    "SettleResponse",
    "SupportedKind",
    "SupportedResponse",
    # Exceptions
    "X402Error",
    "MalformedRequestError",
    "ValidationFailedError",
    "SettlementAbortedError",
    "ChainCallFailedError",
    "TransactionTimeoutError",
    "ConfigurationError",
    "UnknownNetworkError",
    "DuplicateNetworkError",
    "SchemeAlreadyRegisteredError",
    "SchemeNotFoundError",
    # Token registry
    "TokenInfo",
    "TokenRegistry",
]
