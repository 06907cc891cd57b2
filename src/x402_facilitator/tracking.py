"""
Verification tracking

Records successful verifications and gates settlement on them: a payment can
only be settled if a matching, still-fresh verification exists, and each
verification can be consumed by at most one settlement.
"""

import asyncio
import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from x402_facilitator.hooks import (
    AbortResult,
    SettleContext,
    SettleFailureContext,
    SettleResultContext,
    VerifyResultContext,
)
from x402_facilitator.types import PaymentPayload, PaymentRequirements

if TYPE_CHECKING:
    from x402_facilitator.facilitator.x402_facilitator import X402Facilitator

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW = 300

ABORT_NOT_VERIFIED = "payment_not_verified"
ABORT_VERIFICATION_EXPIRED = "verification_expired"
ABORT_VERIFICATION_MISMATCH = "verification_mismatch"


def derive_verification_key(payload: PaymentPayload, requirements: PaymentRequirements) -> str:
    """Stable key for a (payload, requirements) pair.

    ``network:payer:nonce`` when the payload carries an authorization, otherwise
    a digest of the canonical JSON of both objects.
    """
    auth = payload.payload.authorization or {}
    payer = auth.get("from")
    nonce = auth.get("nonce")
    if isinstance(payer, str) and isinstance(nonce, str) and payer and nonce:
        return f"{requirements.network}:{payer}:{nonce}".lower()

    canonical = json.dumps(
        {
            "payload": payload.model_dump(by_alias=True, mode="json"),
            "requirements": requirements.model_dump(by_alias=True, mode="json"),
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return "sha256:" + hashlib.sha256(canonical.encode()).hexdigest()


@dataclass(frozen=True)
class VerificationRecord:
    """A successful verification awaiting settlement"""

    key: str
    verified_at: float
    network: str
    scheme: str
    asset: str
    amount: str
    pay_to: str
    payer: str | None = None

    def age(self, now: float) -> float:
        return now - self.verified_at

    def matches(self, requirements: PaymentRequirements) -> bool:
        """True if *requirements* carry the terms that were verified"""
        return (
            self.network == requirements.network
            and self.scheme == requirements.scheme
            and self.asset.lower() == requirements.asset.lower()
            and self.amount == requirements.amount
            and self.pay_to.lower() == requirements.pay_to.lower()
        )


class VerificationStore(ABC):
    """Storage for verification records.

    ``take`` must be atomic: of any number of concurrent ``take`` calls for one
    key, exactly one receives the record. A verify that lands while a settle of
    the same key is in flight stores a new record, which the settle leaves in
    place: ``delete`` with ``verified_at`` only removes the record it names.
    """

    @abstractmethod
    async def get(self, key: str) -> VerificationRecord | None:
        pass

    @abstractmethod
    async def put(self, record: VerificationRecord) -> None:
        """Insert or replace the record for ``record.key``"""
        pass

    @abstractmethod
    async def delete(self, key: str, verified_at: float | None = None) -> bool:
        """Remove a record. Returns True if one existed.

        With *verified_at*, only a record verified at that instant is removed.
        """
        pass

    @abstractmethod
    async def take(self, key: str) -> VerificationRecord | None:
        """Atomically remove and return the record for *key*"""
        pass

    @abstractmethod
    async def sweep(self, older_than: float) -> int:
        """Remove records verified before *older_than*. Returns the number removed"""
        pass


class InMemoryVerificationStore(VerificationStore):
    """Process-local store guarded by an asyncio lock"""

    def __init__(self) -> None:
        self._records: dict[str, VerificationRecord] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    async def get(self, key: str) -> VerificationRecord | None:
        async with self._lock:
            return self._records.get(key)

    async def put(self, record: VerificationRecord) -> None:
        async with self._lock:
            self._records[record.key] = record

    async def delete(self, key: str, verified_at: float | None = None) -> bool:
        async with self._lock:
            record = self._records.get(key)
            if record is None:
                return False
            if verified_at is not None and record.verified_at != verified_at:
                return False
            del self._records[key]
            return True

    async def take(self, key: str) -> VerificationRecord | None:
        async with self._lock:
            return self._records.pop(key, None)

    async def sweep(self, older_than: float) -> int:
        async with self._lock:
            stale = [k for k, r in self._records.items() if r.verified_at < older_than]
            for key in stale:
                del self._records[key]
            return len(stale)


class VerificationTracker:
    """
    Lifecycle hooks that enforce verify-before-settle.

    - after verify: record the verification
    - before settle: consume the record, aborting if it is missing, stale, or
      was made for other requirements
    - after settle / settle failure: clear the consumed record

    Usage:
        facilitator = X402Facilitator()
        VerificationTracker(freshness_window=300).attach(facilitator)
    """

    def __init__(
        self,
        store: VerificationStore | None = None,
        freshness_window: float = DEFAULT_FRESHNESS_WINDOW,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if freshness_window <= 0:
            raise ValueError("freshness_window must be positive")
        self._store = store if store is not None else InMemoryVerificationStore()
        self._freshness_window = freshness_window
        self._clock = clock
        # Records consumed by a settle that has not finished yet
        self._settling: dict[str, VerificationRecord] = {}

    @property
    def store(self) -> VerificationStore:
        return self._store

    @property
    def freshness_window(self) -> float:
        return self._freshness_window

    def attach(self, facilitator: "X402Facilitator") -> "X402Facilitator":
        """Register the tracking hooks on *facilitator*"""
        return (
            facilitator.on_after_verify(self.on_after_verify)
            .on_before_settle(self.on_before_settle)
            .on_after_settle(self.on_after_settle)
            .on_settle_failure(self.on_settle_failure)
        )

    async def sweep(self) -> int:
        """Drop verifications that have outlived the freshness window"""
        older_than = self._clock() - self._freshness_window
        removed = await self._store.sweep(older_than)
        # Settles aborted by a later hook never report back
        for key in [k for k, r in self._settling.items() if r.verified_at < older_than]:
            del self._settling[key]
        if removed:
            logger.info("Expired %d stale verification(s)", removed)
        return removed

    async def on_after_verify(self, context: VerifyResultContext) -> None:
        await self.sweep()
        requirements = context.requirements
        record = VerificationRecord(
            key=derive_verification_key(context.payment_payload, requirements),
            verified_at=self._clock(),
            network=requirements.network,
            scheme=requirements.scheme,
            asset=requirements.asset,
            amount=requirements.amount,
            pay_to=requirements.pay_to,
            payer=context.result.payer,
        )
        await self._store.put(record)
        logger.debug("Tracked verification %s", record.key)

    async def on_before_settle(self, context: SettleContext) -> AbortResult | None:
        key = derive_verification_key(context.payment_payload, context.requirements)
        record = await self._store.take(key)
        await self.sweep()

        if record is None:
            logger.info("Settlement of %s aborted: no verification on record", key)
            return AbortResult(ABORT_NOT_VERIFIED)

        if not record.matches(context.requirements):
            logger.warning(
                "Settlement of %s aborted: requirements differ from the verified ones", key
            )
            return AbortResult(ABORT_VERIFICATION_MISMATCH)

        if record.age(self._clock()) > self._freshness_window:
            logger.info(
                "Settlement of %s aborted: verification is %.0fs old",
                key,
                record.age(self._clock()),
            )
            return AbortResult(ABORT_VERIFICATION_EXPIRED)

        self._settling[key] = record
        return None

    async def _release(self, payload: PaymentPayload, requirements: PaymentRequirements) -> None:
        key = derive_verification_key(payload, requirements)
        record = self._settling.pop(key, None)
        if record is not None:
            await self._store.delete(key, verified_at=record.verified_at)

    async def on_after_settle(self, context: SettleResultContext) -> None:
        await self._release(context.payment_payload, context.requirements)

    async def on_settle_failure(self, context: SettleFailureContext) -> None:
        await self._release(context.payment_payload, context.requirements)

    async def run_sweeper(self, interval: float) -> None:
        """Sweep stale verifications every *interval* seconds until cancelled"""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Verification sweep failed")

    def start_sweeper(self, interval: float = 60) -> "asyncio.Task[None]":
        """Start ``run_sweeper`` as a background task on the running loop"""
        return asyncio.get_running_loop().create_task(self.run_sweeper(interval))
