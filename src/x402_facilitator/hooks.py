"""
Lifecycle hooks for the facilitator verify/settle phases.

Hooks are registered per event and run sequentially in registration order.
Sync and async callables are both accepted. Only ``before_settle`` hooks can
change the outcome, by returning ``AbortResult`` (or raising
``SettlementAbortedError``); every other hook is an observer whose return
value is ignored. Exceptions raised by hooks are logged and swallowed.
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from x402_facilitator.exceptions import SettlementAbortedError
from x402_facilitator.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


class HookEvent(str, Enum):
    BEFORE_VERIFY = "before_verify"
    AFTER_VERIFY = "after_verify"
    VERIFY_FAILURE = "verify_failure"
    BEFORE_SETTLE = "before_settle"
    AFTER_SETTLE = "after_settle"
    SETTLE_FAILURE = "settle_failure"


@dataclass(frozen=True)
class AbortResult:
    """Returned by a before-settle hook to abort settlement."""

    reason: str


# ============================================================================
# Contexts
# ============================================================================


@dataclass(frozen=True)
class VerifyContext:
    payment_payload: PaymentPayload
    requirements: PaymentRequirements


@dataclass(frozen=True)
class VerifyResultContext(VerifyContext):
    result: VerifyResponse


@dataclass(frozen=True)
class VerifyFailureContext(VerifyContext):
    result: VerifyResponse | None = None
    error: BaseException | None = None

    @property
    def reason(self) -> str:
        if self.result is not None and self.result.invalid_reason:
            return self.result.invalid_reason
        return str(self.error) if self.error is not None else "verification_failed"


@dataclass(frozen=True)
class SettleContext:
    payment_payload: PaymentPayload
    requirements: PaymentRequirements


@dataclass(frozen=True)
class SettleResultContext(SettleContext):
    result: SettleResponse


@dataclass(frozen=True)
class SettleFailureContext(SettleContext):
    result: SettleResponse | None = None
    error: BaseException | None = None

    @property
    def reason(self) -> str:
        if self.result is not None and self.result.error_reason:
            return self.result.error_reason
        return str(self.error) if self.error is not None else "settlement_failed"


HookContext = Union[
    VerifyContext,
    VerifyResultContext,
    VerifyFailureContext,
    SettleContext,
    SettleResultContext,
    SettleFailureContext,
]

BeforeVerifyHook = Callable[[VerifyContext], Union[Awaitable[None], None]]
AfterVerifyHook = Callable[[VerifyResultContext], Union[Awaitable[None], None]]
OnVerifyFailureHook = Callable[[VerifyFailureContext], Union[Awaitable[None], None]]
BeforeSettleHook = Callable[
    [SettleContext], Union[Awaitable[AbortResult | None], AbortResult | None]
]
AfterSettleHook = Callable[[SettleResultContext], Union[Awaitable[None], None]]
OnSettleFailureHook = Callable[[SettleFailureContext], Union[Awaitable[None], None]]

Hook = Callable[[Any], Any]


class LifecycleHookBus:
    """Ordered observer lists, one per ``HookEvent``."""

    def __init__(self) -> None:
        self._hooks: dict[HookEvent, list[Hook]] = {event: [] for event in HookEvent}

    def register(self, event: HookEvent, hook: Hook) -> None:
        self._hooks[HookEvent(event)].append(hook)

    def hooks(self, event: HookEvent) -> list[Hook]:
        return list(self._hooks[HookEvent(event)])

    @staticmethod
    async def _call(hook: Hook, context: HookContext) -> Any:
        result = hook(context)
        if inspect.isawaitable(result):
            return await result
        return result

    async def emit(self, event: HookEvent, context: HookContext) -> None:
        """Run observer hooks for *event*. Results are ignored, errors are logged."""
        for hook in self._hooks[event]:
            try:
                result = await self._call(hook, context)
            except Exception:
                logger.exception("%s hook %r failed", event.value, hook)
                continue
            if isinstance(result, AbortResult):
                logger.warning(
                    "Ignoring abort from %s hook %r: only before_settle may abort",
                    event.value,
                    hook,
                )

    async def run_before_settle(self, context: SettleContext) -> AbortResult | None:
        """Run before-settle hooks, stopping at the first abort.

        Returns:
            The abort decision, or None to continue with settlement
        """
        for hook in self._hooks[HookEvent.BEFORE_SETTLE]:
            try:
                result = await self._call(hook, context)
            except SettlementAbortedError as e:
                return AbortResult(e.reason)
            except Exception:
                logger.exception("before_settle hook %r failed", hook)
                continue
            if isinstance(result, AbortResult):
                return result
        return None
