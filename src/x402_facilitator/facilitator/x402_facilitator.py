"""
X402Facilitator - Core payment processor for x402 protocol
"""

import asyncio
import logging

from x402_facilitator.exceptions import (
    ChainCallFailedError,
    SchemeAlreadyRegisteredError,
    SchemeNotFoundError,
    SettlementAbortedError,
    TransactionTimeoutError,
    UnknownNetworkError,
)
from x402_facilitator.hooks import (
    AfterSettleHook,
    AfterVerifyHook,
    BeforeSettleHook,
    BeforeVerifyHook,
    HookEvent,
    LifecycleHookBus,
    OnSettleFailureHook,
    OnVerifyFailureHook,
    SettleContext,
    SettleFailureContext,
    SettleResultContext,
    VerifyContext,
    VerifyFailureContext,
    VerifyResultContext,
)
from x402_facilitator.mechanisms._base import FacilitatorScheme
from x402_facilitator.types import (
    X402_VERSION,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


def _payer_of(payload: PaymentPayload) -> str | None:
    auth = payload.payload.authorization or {}
    payer = auth.get("from")
    return payer if isinstance(payer, str) else None


class X402Facilitator:
    """
    Core payment processor for x402 protocol.

    Manages payment schemes, runs the verify and settle phases through the
    lifecycle hooks, and maps every predictable failure to a response value.

    Args:
        settle_timeout: Upper bound in seconds for one settlement (None disables it)
        hook_bus: Hook bus to use (a fresh one by default)
    """

    def __init__(
        self,
        settle_timeout: float | None = None,
        hook_bus: LifecycleHookBus | None = None,
    ) -> None:
        self._schemes: dict[str, dict[str, FacilitatorScheme]] = {}
        self._extensions: list[str] = []
        self._settle_timeout = settle_timeout
        self._hooks = hook_bus if hook_bus is not None else LifecycleHookBus()

    @property
    def hooks(self) -> LifecycleHookBus:
        return self._hooks

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        networks: list[str],
        scheme: FacilitatorScheme,
    ) -> "X402Facilitator":
        """
        Register a payment scheme for multiple networks.

        Args:
            networks: List of network identifiers
            scheme: Facilitator scheme instance

        Returns:
            self for method chaining

        Raises:
            SchemeAlreadyRegisteredError: If a network already has this scheme
        """
        name = scheme.scheme()
        for network in networks:
            if name in self._schemes.get(network, {}):
                raise SchemeAlreadyRegisteredError(name, network)
        for network in networks:
            self._schemes.setdefault(network, {})[name] = scheme
            logger.info("Registered scheme %s for %s", name, network)
        return self

    def register_extension(self, name: str) -> "X402Facilitator":
        """Advertise a protocol extension (e.g. ``"bazaar"``) in /supported"""
        if name not in self._extensions:
            self._extensions.append(name)
        return self

    def on_before_verify(self, hook: BeforeVerifyHook) -> "X402Facilitator":
        self._hooks.register(HookEvent.BEFORE_VERIFY, hook)
        return self

    def on_after_verify(self, hook: AfterVerifyHook) -> "X402Facilitator":
        self._hooks.register(HookEvent.AFTER_VERIFY, hook)
        return self

    def on_verify_failure(self, hook: OnVerifyFailureHook) -> "X402Facilitator":
        self._hooks.register(HookEvent.VERIFY_FAILURE, hook)
        return self

    def on_before_settle(self, hook: BeforeSettleHook) -> "X402Facilitator":
        """Register a hook that may abort settlement by returning ``AbortResult``"""
        self._hooks.register(HookEvent.BEFORE_SETTLE, hook)
        return self

    def on_after_settle(self, hook: AfterSettleHook) -> "X402Facilitator":
        self._hooks.register(HookEvent.AFTER_SETTLE, hook)
        return self

    def on_settle_failure(self, hook: OnSettleFailureHook) -> "X402Facilitator":
        self._hooks.register(HookEvent.SETTLE_FAILURE, hook)
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_supported(self) -> SupportedResponse:
        """
        Return supported network/scheme combinations.

        Returns:
            SupportedResponse with kinds, extensions and signer addresses
            grouped by CAIP family
        """
        kinds: list[SupportedKind] = []
        signers: dict[str, list[str]] = {}
        for network, schemes in self._schemes.items():
            for name, scheme in schemes.items():
                kinds.append(
                    SupportedKind(
                        x402Version=X402_VERSION,
                        scheme=name,
                        network=network,
                        extra=scheme.get_extra(network),
                    )
                )
                family = signers.setdefault(scheme.caip_family(), [])
                for address in scheme.get_signers():
                    if address not in family:
                        family.append(address)

        return SupportedResponse(
            kinds=kinds,
            extensions=list(self._extensions),
            signers=signers,
        )

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment signature and validity.

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            VerifyResponse

        Raises:
            Exception: Only unexpected errors; verify-failure hooks run first
        """
        await self._hooks.emit(HookEvent.BEFORE_VERIFY, VerifyContext(payload, requirements))

        try:
            scheme = self._find_scheme(requirements.network, requirements.scheme)
            result = await scheme.validate(payload, requirements)
        except SchemeNotFoundError:
            result = self._invalid(payload, "unsupported_scheme")
        except UnknownNetworkError:
            result = self._invalid(payload, "unsupported_network")
        except ChainCallFailedError as e:
            logger.error("Chain call failed during verify: %s", e)
            result = self._invalid(payload, "chain_call_failed")
        except Exception as e:
            logger.exception("Unexpected error during verify")
            await self._hooks.emit(
                HookEvent.VERIFY_FAILURE,
                VerifyFailureContext(payload, requirements, error=e),
            )
            raise

        if result.is_valid:
            await self._hooks.emit(
                HookEvent.AFTER_VERIFY,
                VerifyResultContext(payload, requirements, result=result),
            )
        else:
            await self._hooks.emit(
                HookEvent.VERIFY_FAILURE,
                VerifyFailureContext(payload, requirements, result=result),
            )
        return result

    # ------------------------------------------------------------------
    # Settle
    # ------------------------------------------------------------------

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement.

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            SettleResponse with transaction hash, or the abort reason if a
            before-settle hook refused the settlement

        Raises:
            Exception: Only unexpected errors; settle-failure hooks run first
        """
        network = requirements.network
        abort = await self._hooks.run_before_settle(SettleContext(payload, requirements))
        if abort is not None:
            logger.info(
                "Settlement aborted: %s",
                abort.reason,
                extra={"network": network, "payer": _payer_of(payload)},
            )
            return SettleResponse(
                success=False,
                errorReason=abort.reason,
                payer=_payer_of(payload),
                network=network,
            )

        try:
            scheme = self._find_scheme(network, requirements.scheme)
            result = await self._execute(scheme, payload, requirements)
        except SchemeNotFoundError:
            result = self._failed(payload, network, "unsupported_scheme")
        except UnknownNetworkError:
            result = self._failed(payload, network, "unsupported_network")
        except TransactionTimeoutError:
            result = self._failed(payload, network, "timeout")
        except ChainCallFailedError as e:
            logger.error("Chain call failed during settle: %s", e)
            result = self._failed(payload, network, "chain_call_failed")
        except SettlementAbortedError:
            raise
        except Exception as e:
            logger.exception("Unexpected error during settle")
            await self._hooks.emit(
                HookEvent.SETTLE_FAILURE,
                SettleFailureContext(payload, requirements, error=e),
            )
            raise

        if result.success:
            await self._hooks.emit(
                HookEvent.AFTER_SETTLE,
                SettleResultContext(payload, requirements, result=result),
            )
        else:
            await self._hooks.emit(
                HookEvent.SETTLE_FAILURE,
                SettleFailureContext(payload, requirements, result=result),
            )
        return result

    async def _execute(
        self,
        scheme: FacilitatorScheme,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        if self._settle_timeout is None:
            return await scheme.execute(payload, requirements)
        try:
            return await asyncio.wait_for(
                scheme.execute(payload, requirements), timeout=self._settle_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Settlement on %s exceeded %ss", requirements.network, self._settle_timeout
            )
            return self._failed(payload, requirements.network, "timeout")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _invalid(payload: PaymentPayload, reason: str) -> VerifyResponse:
        return VerifyResponse(isValid=False, invalidReason=reason, payer=_payer_of(payload))

    @staticmethod
    def _failed(payload: PaymentPayload, network: str, reason: str) -> SettleResponse:
        return SettleResponse(
            success=False, errorReason=reason, payer=_payer_of(payload), network=network
        )

    def _find_scheme(self, network: str, scheme: str) -> FacilitatorScheme:
        """Find scheme for network

        Raises:
            UnknownNetworkError: No scheme is registered for the network
            SchemeNotFoundError: The network has no scheme with this name
        """
        network_schemes = self._schemes.get(network)
        if network_schemes is None:
            raise UnknownNetworkError(network)
        found = network_schemes.get(scheme)
        if found is None:
            raise SchemeNotFoundError(scheme, network)
        return found
