"""
Base classes for exact mechanism.

Provides the ChainAdapter ABC and the base facilitator scheme for EIP-3009
``transferWithAuthorization`` payments, delegating chain-specific address and
network handling to the adapter.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from x402_facilitator.abi import ERC20_BALANCE_OF_ABI
from x402_facilitator.exceptions import (
    ChainCallFailedError,
    TransactionTimeoutError,
    ValidationFailedError,
)
from x402_facilitator.mechanisms._base.facilitator import FacilitatorScheme
from x402_facilitator.mechanisms._exact_base.types import (
    AUTHORIZATION_STATE_ABI,
    SCHEME_EXACT,
    TRANSFER_AUTH_EIP712_TYPES,
    TRANSFER_AUTH_PRIMARY_TYPE,
    TRANSFER_WITH_AUTHORIZATION_BYTES_ABI,
    TRANSFER_WITH_AUTHORIZATION_VRS_ABI,
    TransferAuthorization,
    build_eip712_domain,
    build_eip712_message,
    split_signature,
)
from x402_facilitator.tokens import TokenRegistry
from x402_facilitator.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
)
from x402_facilitator.utils.eip712 import hex_to_bytes
from x402_facilitator.utils.erc6492 import (
    ERC6492Signature,
    is_erc6492_signature,
    parse_erc6492_signature,
)

if TYPE_CHECKING:
    from x402_facilitator.signers.facilitator import FacilitatorSigner

logger = logging.getLogger(__name__)

# An authorization must stay valid this many seconds past verification
SETTLE_BUFFER_SECONDS = 6


# ---------------------------------------------------------------------------
# Chain adapter interface
# ---------------------------------------------------------------------------


class ChainAdapter(ABC):
    """Encapsulates chain-specific differences for exact."""

    @abstractmethod
    def caip_family(self) -> str:
        """CAIP-2 family pattern, e.g. ``eip155:*``."""

    @abstractmethod
    def parse_chain_id(self, network: str) -> int:
        """Extract chain ID from a network string."""

    @abstractmethod
    def validate_network(self, network: str) -> bool:
        """Return True if *network* is a valid identifier for this chain."""

    @abstractmethod
    def validate_address(self, address: str) -> bool:
        """Return True if *address* has the correct format for this chain."""

    @abstractmethod
    def normalize_address(self, address: str) -> str:
        """Normalize *address* for case-insensitive comparison."""


# ---------------------------------------------------------------------------
# Base facilitator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckedAuthorization:
    """A payload that passed every off-chain and read-only check."""

    authorization: TransferAuthorization
    signature: bytes
    domain: dict[str, Any]
    message: dict[str, Any]
    erc6492: ERC6492Signature | None = None
    needs_deployment: bool = False

    @property
    def payer(self) -> str:
        return self.authorization.from_address

    @property
    def settlement_signature(self) -> bytes:
        """Signature passed to the token contract (unwrapped for ERC-6492)."""
        if self.erc6492 is not None:
            return self.erc6492.inner_signature
        return self.signature


class ExactBaseFacilitatorScheme(FacilitatorScheme):
    """Base TransferWithAuthorization facilitator scheme.

    Args:
        signer: Facilitator signer used for reads, signature checks and writes
        adapter: Chain adapter
        deploy_erc4337_with_eip6492: Deploy undeployed smart accounts whose
            signature is ERC-6492 wrapped during settlement
        allowed_tokens: Optional token whitelist (None allows every token)
        clock: Time source in epoch seconds
    """

    def __init__(
        self,
        signer: "FacilitatorSigner",
        adapter: ChainAdapter,
        deploy_erc4337_with_eip6492: bool = False,
        allowed_tokens: set[str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._signer = signer
        self._adapter = adapter
        self._deploy_erc4337_with_eip6492 = deploy_erc4337_with_eip6492
        self._allowed_tokens: set[str] | None = (
            {adapter.normalize_address(t) for t in allowed_tokens}
            if allowed_tokens is not None
            else None
        )
        self._clock = clock

    def scheme(self) -> str:
        return SCHEME_EXACT

    def caip_family(self) -> str:
        return self._adapter.caip_family()

    def get_signers(self) -> list[str]:
        return self._signer.get_addresses()

    # ------------------------------------------------------------------
    # validate
    # ------------------------------------------------------------------

    async def validate(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        try:
            checked = await self._check(payload, requirements)
        except ValidationFailedError as e:
            logger.info(
                "[EXACT] Payment invalid: %s",
                e.reason,
                extra={"network": requirements.network, "payer": self._payer_of(payload)},
            )
            return VerifyResponse(
                isValid=False, invalidReason=e.reason, payer=self._payer_of(payload)
            )

        return VerifyResponse(isValid=True, payer=checked.payer)

    # ------------------------------------------------------------------
    # execute
    # ------------------------------------------------------------------

    async def execute(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        network = requirements.network
        try:
            checked = await self._check(payload, requirements)
        except ValidationFailedError as e:
            return SettleResponse(
                success=False,
                errorReason=e.reason,
                payer=self._payer_of(payload),
                network=network,
            )

        payer = checked.payer

        if checked.needs_deployment:
            error = await self._deploy_smart_account(checked, network)
            if error is not None:
                return SettleResponse(
                    success=False, errorReason=error, payer=payer, network=network
                )
            is_valid = await self._signer.verify_typed_data(
                address=payer,
                domain=checked.domain,
                types=TRANSFER_AUTH_EIP712_TYPES,
                primary_type=TRANSFER_AUTH_PRIMARY_TYPE,
                message=checked.message,
                signature=checked.settlement_signature,
                network=network,
            )
            if not is_valid:
                return SettleResponse(
                    success=False,
                    errorReason="invalid_signature",
                    payer=payer,
                    network=network,
                )

        abi, args = self._build_transfer_call(checked)
        token_address = requirements.asset

        logger.info(
            "[EXACT] Calling transferWithAuthorization on token=%s network=%s",
            token_address,
            network,
        )

        try:
            tx_hash = await self._signer.write_contract(
                address=token_address,
                abi=abi,
                function_name="transferWithAuthorization",
                args=args,
                network=network,
            )
        except ChainCallFailedError as e:
            logger.error("[EXACT] transferWithAuthorization failed: %s", e.cause)
            return SettleResponse(
                success=False,
                errorReason="transaction_failed",
                payer=payer,
                network=network,
            )

        try:
            receipt = await self._signer.wait_for_transaction_receipt(tx_hash, network=network)
        except TransactionTimeoutError:
            logger.warning("[EXACT] Timed out waiting for receipt of %s", tx_hash)
            return SettleResponse(
                success=False,
                errorReason="timeout",
                payer=payer,
                transaction=tx_hash,
                network=network,
            )
        except ChainCallFailedError as e:
            logger.error("[EXACT] Receipt lookup failed for %s: %s", tx_hash, e.cause)
            return SettleResponse(
                success=False,
                errorReason="transaction_failed",
                payer=payer,
                transaction=tx_hash,
                network=network,
            )

        if not self._receipt_succeeded(receipt):
            return SettleResponse(
                success=False,
                errorReason="transaction_failed_on_chain",
                payer=payer,
                transaction=tx_hash,
                network=network,
            )

        return SettleResponse(
            success=True,
            payer=payer,
            transaction=tx_hash,
            network=network,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _payer_of(payload: PaymentPayload) -> str | None:
        auth = payload.payload.authorization or {}
        payer = auth.get("from")
        return payer if isinstance(payer, str) else None

    @staticmethod
    def _receipt_succeeded(receipt: dict[str, Any]) -> bool:
        raw_status = receipt.get("status")
        tx_status = raw_status.lower() if isinstance(raw_status, str) else raw_status
        return tx_status not in ("failed", "0", 0)

    def _extract_authorization(self, payload: PaymentPayload) -> TransferAuthorization:
        auth_data = payload.payload.authorization
        if auth_data is None:
            raise ValidationFailedError("missing_transfer_authorization")
        try:
            auth = TransferAuthorization(**auth_data)
            int(auth.value)
            int(auth.valid_after)
            int(auth.valid_before)
            if len(hex_to_bytes(auth.nonce)) != 32:
                raise ValueError("nonce must be 32 bytes")
        except (ValidationError, ValueError, TypeError) as e:
            raise ValidationFailedError("invalid_payload", f"Malformed authorization: {e}")
        if not self._adapter.validate_address(auth.from_address) or not (
            self._adapter.validate_address(auth.to)
        ):
            raise ValidationFailedError("invalid_payload", "Malformed authorization address")
        return auth

    def _build_domain(self, requirements: PaymentRequirements) -> dict[str, Any]:
        extra = requirements.extra
        token_name = extra.name if extra else None
        token_version = extra.version if extra else None
        if not token_name or not token_version:
            token_info = TokenRegistry.find_by_address(requirements.network, requirements.asset)
            token_name = token_name or (token_info.name if token_info else "Unknown Token")
            token_version = token_version or (token_info.version if token_info else "1")

        return build_eip712_domain(
            token_name,
            token_version,
            self._adapter.parse_chain_id(requirements.network),
            requirements.asset,
        )

    def _check_terms(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> None:
        adapter = self._adapter

        if payload.scheme != self.scheme() or requirements.scheme != self.scheme():
            raise ValidationFailedError("unsupported_scheme")

        if payload.network != requirements.network:
            raise ValidationFailedError("network_mismatch")

        if not adapter.validate_network(requirements.network):
            raise ValidationFailedError("invalid_network")

        # Token whitelist
        if self._allowed_tokens is not None:
            if adapter.normalize_address(requirements.asset) not in self._allowed_tokens:
                raise ValidationFailedError("token_not_allowed")

        if adapter.normalize_address(payload.accepted.asset) != adapter.normalize_address(
            requirements.asset
        ):
            raise ValidationFailedError("asset_mismatch")

    def _check_authorization(
        self,
        auth: TransferAuthorization,
        requirements: PaymentRequirements,
    ) -> None:
        adapter = self._adapter

        # Recipient check
        if adapter.normalize_address(auth.to) != adapter.normalize_address(requirements.pay_to):
            raise ValidationFailedError("payto_mismatch")

        # Amount check: exact-or-greater
        try:
            required = int(requirements.amount)
        except ValueError:
            raise ValidationFailedError("invalid_requirements")
        if int(auth.value) < required:
            raise ValidationFailedError("amount_mismatch")

        # Time window
        now = int(self._clock())
        if int(auth.valid_before) < now + SETTLE_BUFFER_SECONDS:
            raise ValidationFailedError("expired")
        if int(auth.valid_after) >= now:
            raise ValidationFailedError("not_yet_valid")

    async def _check(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> CheckedAuthorization:
        self._check_terms(payload, requirements)
        auth = self._extract_authorization(payload)
        self._check_authorization(auth, requirements)

        try:
            signature = hex_to_bytes(payload.payload.signature)
        except ValueError:
            raise ValidationFailedError("invalid_signature", "Signature is not valid hex")

        network = requirements.network
        domain = self._build_domain(requirements)
        message = build_eip712_message(auth)

        erc6492: ERC6492Signature | None = None
        needs_deployment = False
        if is_erc6492_signature(signature):
            try:
                erc6492 = parse_erc6492_signature(signature)
            except Exception as e:
                raise ValidationFailedError("invalid_signature", f"Malformed ERC-6492: {e}")
            code = await self._signer.get_code(auth.from_address, network=network)
            if not code:
                if not self._deploy_erc4337_with_eip6492:
                    raise ValidationFailedError("undeployed_smart_wallet")
                # Counterfactual account: the signature can only be checked once deployed
                needs_deployment = True

        if not needs_deployment:
            is_valid = await self._signer.verify_typed_data(
                address=auth.from_address,
                domain=domain,
                types=TRANSFER_AUTH_EIP712_TYPES,
                primary_type=TRANSFER_AUTH_PRIMARY_TYPE,
                message=message,
                signature=erc6492.inner_signature if erc6492 else signature,
                network=network,
            )
            if not is_valid:
                raise ValidationFailedError("invalid_signature")

        used = await self._signer.read_contract(
            address=requirements.asset,
            abi=AUTHORIZATION_STATE_ABI,
            function_name="authorizationState",
            args=[auth.from_address, message["nonce"]],
            network=network,
        )
        if used:
            raise ValidationFailedError("nonce_already_used")

        balance = await self._signer.read_contract(
            address=requirements.asset,
            abi=ERC20_BALANCE_OF_ABI,
            function_name="balanceOf",
            args=[auth.from_address],
            network=network,
        )
        if int(balance) < int(auth.value):
            raise ValidationFailedError("insufficient_funds")

        return CheckedAuthorization(
            authorization=auth,
            signature=signature,
            domain=domain,
            message=message,
            erc6492=erc6492,
            needs_deployment=needs_deployment,
        )

    async def _deploy_smart_account(
        self,
        checked: CheckedAuthorization,
        network: str,
    ) -> str | None:
        """Deploy a counterfactual account via its ERC-6492 factory.

        Returns:
            Error reason, or None once the account has code
        """
        if checked.erc6492 is None:
            return "invalid_signature"
        payer = checked.payer
        try:
            if await self._signer.get_code(payer, network=network):
                return None
            logger.info(
                "[EXACT] Deploying smart account %s via factory %s",
                payer,
                checked.erc6492.factory,
            )
            tx_hash = await self._signer.send_transaction(
                to=checked.erc6492.factory,
                data=checked.erc6492.factory_calldata,
                network=network,
            )
            receipt = await self._signer.wait_for_transaction_receipt(tx_hash, network=network)
            if not self._receipt_succeeded(receipt):
                return "smart_wallet_deployment_failed"
            if not await self._signer.get_code(payer, network=network):
                return "smart_wallet_deployment_failed"
        except TransactionTimeoutError:
            return "timeout"
        except ChainCallFailedError as e:
            logger.error("[EXACT] Smart account deployment failed: %s", e.cause)
            return "smart_wallet_deployment_failed"
        return None

    def _build_transfer_call(
        self,
        checked: CheckedAuthorization,
    ) -> tuple[list[dict[str, Any]], list[Any]]:
        auth = checked.authorization
        base_args: list[Any] = [
            auth.from_address,
            auth.to,
            int(auth.value),
            int(auth.valid_after),
            int(auth.valid_before),
            checked.message["nonce"],
        ]
        signature = checked.settlement_signature
        if checked.erc6492 is None and len(signature) == 65:
            v, r, s = split_signature(signature)
            return TRANSFER_WITH_AUTHORIZATION_VRS_ABI, base_args + [v, r, s]
        return TRANSFER_WITH_AUTHORIZATION_BYTES_ABI, base_args + [signature]
