"""
Tests for X402Facilitator.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import BASE_SEPOLIA, BUYER_ADDRESS, FACILITATOR_ADDRESS, make_payload, make_requirements

from x402_facilitator.exceptions import (
    ChainCallFailedError,
    SchemeAlreadyRegisteredError,
    SettlementAbortedError,
    TransactionTimeoutError,
)
from x402_facilitator.facilitator import X402Facilitator
from x402_facilitator.hooks import AbortResult
from x402_facilitator.mechanisms._base import FacilitatorScheme
from x402_facilitator.mechanisms.evm.exact import ExactEvmScheme
from x402_facilitator.tracking import VerificationTracker
from x402_facilitator.types import SettleResponse, VerifyResponse


class FakeScheme(FacilitatorScheme):
    """Scheme whose validate/execute outcomes are set by the test"""

    def __init__(self, name: str = "exact"):
        self._name = name
        self.validate_result: VerifyResponse | Exception = VerifyResponse(
            isValid=True, payer=BUYER_ADDRESS
        )
        self.execute_delay = 0.0
        self.execute_error: Exception | None = None
        self.executions = 0

    def scheme(self) -> str:
        return self._name

    def caip_family(self) -> str:
        return "eip155:*"

    def get_extra(self, network):
        return {"feePayer": FACILITATOR_ADDRESS}

    def get_signers(self):
        return [FACILITATOR_ADDRESS]

    async def validate(self, payload, requirements):
        if isinstance(self.validate_result, Exception):
            raise self.validate_result
        return self.validate_result

    async def execute(self, payload, requirements):
        self.executions += 1
        if self.execute_delay:
            await asyncio.sleep(self.execute_delay)
        if self.execute_error is not None:
            raise self.execute_error
        return SettleResponse(
            success=True,
            payer=BUYER_ADDRESS,
            transaction=f"0xtx{self.executions}",
            network=requirements.network,
        )


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def scheme():
    return FakeScheme()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def facilitator(scheme, clock):
    facilitator = X402Facilitator().register([BASE_SEPOLIA], scheme)
    VerificationTracker(freshness_window=300, clock=clock).attach(facilitator)
    return facilitator


@pytest.fixture
def payment():
    requirements = make_requirements()
    return make_payload(requirements), requirements


class TestRegistration:
    def test_register_is_chainable(self):
        facilitator = X402Facilitator()
        result = facilitator.register([BASE_SEPOLIA, "eip155:97"], FakeScheme())
        assert result is facilitator

    def test_duplicate_registration_rejected(self):
        facilitator = X402Facilitator().register([BASE_SEPOLIA], FakeScheme())
        with pytest.raises(SchemeAlreadyRegisteredError):
            facilitator.register(["eip155:97", BASE_SEPOLIA], FakeScheme())
        # Nothing from the rejected call was registered
        assert [k.network for k in facilitator.get_supported().kinds] == [BASE_SEPOLIA]

    def test_get_supported(self):
        facilitator = (
            X402Facilitator()
            .register([BASE_SEPOLIA, "eip155:97"], FakeScheme())
            .register([BASE_SEPOLIA], FakeScheme("upto"))
            .register_extension("bazaar")
            .register_extension("bazaar")
        )

        supported = facilitator.get_supported()

        assert {(k.scheme, k.network) for k in supported.kinds} == {
            ("exact", BASE_SEPOLIA),
            ("exact", "eip155:97"),
            ("upto", BASE_SEPOLIA),
        }
        assert all(k.x402_version == 2 for k in supported.kinds)
        assert supported.kinds[0].extra == {"feePayer": FACILITATOR_ADDRESS}
        assert supported.extensions == ["bazaar"]
        assert supported.signers == {"eip155:*": [FACILITATOR_ADDRESS]}


class TestVerify:
    @pytest.mark.anyio
    async def test_verify_valid(self, facilitator, payment):
        result = await facilitator.verify(*payment)
        assert result.is_valid is True
        assert result.payer == BUYER_ADDRESS

    @pytest.mark.anyio
    async def test_verify_idempotent(self, facilitator, payment):
        first = await facilitator.verify(*payment)
        second = await facilitator.verify(*payment)
        assert first == second

    @pytest.mark.anyio
    async def test_unknown_network_is_structured(self, facilitator):
        requirements = make_requirements(network="eip155:999999")
        result = await facilitator.verify(make_payload(requirements), requirements)
        assert result.is_valid is False
        assert result.invalid_reason == "unsupported_network"

    @pytest.mark.anyio
    async def test_unknown_scheme_is_structured(self, facilitator):
        requirements = make_requirements(scheme="upto")
        result = await facilitator.verify(make_payload(requirements), requirements)
        assert result.is_valid is False
        assert result.invalid_reason == "unsupported_scheme"

    @pytest.mark.anyio
    async def test_chain_failure_is_structured(self, facilitator, scheme, payment):
        scheme.validate_result = ChainCallFailedError(BASE_SEPOLIA, "rpc down")
        result = await facilitator.verify(*payment)
        assert result.is_valid is False
        assert result.invalid_reason == "chain_call_failed"

    @pytest.mark.anyio
    async def test_verify_hooks(self, facilitator, scheme, payment):
        after = MagicMock()
        failure = MagicMock()
        facilitator.on_after_verify(after).on_verify_failure(failure)

        await facilitator.verify(*payment)
        scheme.validate_result = VerifyResponse(isValid=False, invalidReason="expired")
        await facilitator.verify(*payment)

        after.assert_called_once()
        failure.assert_called_once()
        assert failure.call_args.args[0].reason == "expired"

    @pytest.mark.anyio
    async def test_unexpected_error_fires_failure_then_raises(
        self, facilitator, scheme, payment
    ):
        failure = AsyncMock()
        facilitator.on_verify_failure(failure)
        scheme.validate_result = RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await facilitator.verify(*payment)

        failure.assert_awaited_once()
        assert isinstance(failure.await_args.args[0].error, RuntimeError)


class TestSettle:
    @pytest.mark.anyio
    async def test_settle_never_verified_aborts(self, facilitator, scheme, payment):
        result = await facilitator.settle(*payment)
        assert result.success is False
        assert result.error_reason == "payment_not_verified"
        assert result.network == BASE_SEPOLIA
        assert scheme.executions == 0

    @pytest.mark.anyio
    async def test_verify_then_settle(self, facilitator, payment):
        await facilitator.verify(*payment)
        result = await facilitator.settle(*payment)
        assert result.success is True
        assert result.transaction == "0xtx1"

    @pytest.mark.anyio
    async def test_second_settle_fails(self, facilitator, scheme, payment):
        await facilitator.verify(*payment)
        first = await facilitator.settle(*payment)
        second = await facilitator.settle(*payment)

        assert first.success is True
        assert second.success is False
        assert second.error_reason == "payment_not_verified"
        assert scheme.executions == 1

    @pytest.mark.anyio
    async def test_settle_with_unverified_amount_aborts(self, facilitator, scheme, payment):
        payload, requirements = payment
        await facilitator.verify(payload, requirements)

        result = await facilitator.settle(payload, make_requirements(amount="1"))

        assert result.success is False
        assert result.error_reason == "verification_mismatch"
        assert scheme.executions == 0

    @pytest.mark.anyio
    async def test_concurrent_settles_yield_one_success(self, facilitator, scheme, payment):
        scheme.execute_delay = 0.01
        await facilitator.verify(*payment)

        results = await asyncio.gather(*(facilitator.settle(*payment) for _ in range(5)))

        assert sum(r.success for r in results) == 1
        assert scheme.executions == 1

    @pytest.mark.anyio
    async def test_expired_verification_treated_as_missing(
        self, facilitator, scheme, clock, payment
    ):
        await facilitator.verify(*payment)
        clock.now += 301

        result = await facilitator.settle(*payment)

        assert result.success is False
        assert result.error_reason == "verification_expired"
        assert scheme.executions == 0

    @pytest.mark.anyio
    async def test_abort_does_not_fire_failure_hooks(self, facilitator, payment):
        failure = MagicMock()
        facilitator.on_settle_failure(failure)

        await facilitator.settle(*payment)

        failure.assert_not_called()

    @pytest.mark.anyio
    async def test_custom_abort_hook(self, scheme, payment):
        facilitator = X402Facilitator().register([BASE_SEPOLIA], scheme)
        facilitator.on_before_settle(lambda ctx: AbortResult("blocked_payer"))

        result = await facilitator.settle(*payment)

        assert result.error_reason == "blocked_payer"
        assert scheme.executions == 0

    @pytest.mark.anyio
    async def test_settle_timeout(self, scheme, payment):
        scheme.execute_delay = 1.0
        facilitator = X402Facilitator(settle_timeout=0.01).register([BASE_SEPOLIA], scheme)

        result = await facilitator.settle(*payment)

        assert result.success is False
        assert result.error_reason == "timeout"

    @pytest.mark.anyio
    async def test_settle_chain_errors_are_structured(self, scheme, payment):
        facilitator = X402Facilitator().register([BASE_SEPOLIA], scheme)

        scheme.execute_error = TransactionTimeoutError(BASE_SEPOLIA, "no receipt")
        assert (await facilitator.settle(*payment)).error_reason == "timeout"

        scheme.execute_error = ChainCallFailedError(BASE_SEPOLIA, "nonce too low")
        assert (await facilitator.settle(*payment)).error_reason == "chain_call_failed"

    @pytest.mark.anyio
    async def test_settle_unknown_network(self, payment):
        facilitator = X402Facilitator()
        result = await facilitator.settle(*payment)
        assert result.success is False
        assert result.error_reason == "unsupported_network"

    @pytest.mark.anyio
    async def test_settle_hooks(self, facilitator, payment):
        after = AsyncMock()
        facilitator.on_after_settle(after)

        await facilitator.verify(*payment)
        result = await facilitator.settle(*payment)

        after.assert_awaited_once()
        assert after.await_args.args[0].result == result

    @pytest.mark.anyio
    async def test_scheme_abort_propagates(self, facilitator, scheme, payment):
        scheme.execute_error = SettlementAbortedError("policy")
        await facilitator.verify(*payment)

        with pytest.raises(SettlementAbortedError):
            await facilitator.settle(*payment)


class TestEndToEnd:
    @pytest.mark.anyio
    async def test_verify_settle_settle_again(self, payment):
        payload, requirements = payment
        signer = MagicMock()
        signer.get_addresses.return_value = [FACILITATOR_ADDRESS]
        signer.get_code = AsyncMock(return_value=b"")
        signer.verify_typed_data = AsyncMock(return_value=True)
        signer.used = False

        async def read_contract(address, abi, function_name, args, network=None):
            if function_name == "authorizationState":
                return signer.used
            return 10**9

        async def write_contract(**kwargs):
            signer.used = True
            return "0xsettled"

        signer.read_contract = AsyncMock(side_effect=read_contract)
        signer.write_contract = AsyncMock(side_effect=write_contract)
        signer.wait_for_transaction_receipt = AsyncMock(
            return_value={"hash": "0xsettled", "status": "confirmed"}
        )

        facilitator = X402Facilitator(settle_timeout=5).register(
            [BASE_SEPOLIA], ExactEvmScheme(signer)
        )
        VerificationTracker().attach(facilitator)

        verified = await facilitator.verify(payload, requirements)
        settled = await facilitator.settle(payload, requirements)
        again = await facilitator.settle(payload, requirements)

        assert verified.is_valid is True
        assert settled.success is True
        assert settled.transaction == "0xsettled"
        assert again.success is False
        assert again.error_reason == "payment_not_verified"

        # Re-verifying a settled payment fails on the consumed nonce
        reverified = await facilitator.verify(payload, requirements)
        assert reverified.is_valid is False
        assert reverified.invalid_reason == "nonce_already_used"
