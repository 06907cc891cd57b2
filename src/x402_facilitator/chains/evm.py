"""
Web3ChainClient - EVM chain client implementation using web3.py
"""

import asyncio
import logging
from typing import Any

from eth_account import Account

from x402_facilitator.abi import EIP1271_ABI
from x402_facilitator.chains.base import ChainClient
from x402_facilitator.exceptions import ChainCallFailedError, TransactionTimeoutError
from x402_facilitator.utils.eip712 import encode_typed, hex_to_bytes, typed_data_digest
from x402_facilitator.utils.erc6492 import EIP1271_MAGIC_VALUE

logger = logging.getLogger(__name__)


class Web3ChainClient(ChainClient):
    """EVM client for one network, signing with the facilitator's private key"""

    def __init__(
        self,
        network: str,
        rpc_url: str,
        private_key: str,
        poa: bool = False,
    ) -> None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self.network = network
        self._rpc_url = rpc_url
        self._private_key = private_key
        self._poa = poa
        self._address = Account.from_key(private_key).address
        self._web3: Any = None
        # Serializes nonce allocation for transactions sent from this account
        self._send_lock = asyncio.Lock()
        logger.debug(
            "Web3ChainClient initialized",
            extra={"network": network, "address": self._address},
        )

    @classmethod
    def from_private_key(
        cls, network: str, rpc_url: str, private_key: str, poa: bool = False
    ) -> "Web3ChainClient":
        """Create client from private key"""
        return cls(network, rpc_url, private_key, poa=poa)

    def get_address(self) -> str:
        return self._address

    def _ensure_web3(self) -> Any:
        """Lazy initialize the async web3 client."""
        if self._web3 is None:
            from web3 import AsyncHTTPProvider, AsyncWeb3
            from web3.middleware import ExtraDataToPOAMiddleware

            w3 = AsyncWeb3(AsyncHTTPProvider(self._rpc_url))
            if self._poa:
                w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._web3 = w3
        return self._web3

    @staticmethod
    def _checksum(address: str) -> str:
        from web3 import Web3

        return Web3.to_checksum_address(address)

    async def get_code(self, address: str) -> bytes:
        w3 = self._ensure_web3()
        try:
            code = await w3.eth.get_code(self._checksum(address))
        except Exception as e:
            raise ChainCallFailedError(self.network, e) from e
        return bytes(code)

    async def read_contract(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> Any:
        w3 = self._ensure_web3()
        try:
            contract = w3.eth.contract(address=self._checksum(address), abi=abi)
            func = getattr(contract.functions, function_name)
            return await func(*args).call()
        except Exception as e:
            raise ChainCallFailedError(self.network, e) from e

    async def verify_typed_data(
        self,
        address: str,
        domain: dict[str, Any],
        types: dict[str, Any],
        primary_type: str,
        message: dict[str, Any],
        signature: str | bytes,
    ) -> bool:
        """Verify EIP-712 signature: ECDSA recovery first, then EIP-1271 if *address* has code."""
        sig_bytes = hex_to_bytes(signature)
        if len(sig_bytes) == 65:
            try:
                signable = encode_typed(domain, types, primary_type, message)
                recovered = Account.recover_message(signable, signature=sig_bytes)
                if recovered.lower() == address.lower():
                    return True
            except Exception as e:
                logger.debug("ECDSA recovery failed: %s", e, extra={"address": address})

        code = await self.get_code(address)
        if not code:
            return False

        digest = typed_data_digest(domain, types, primary_type, message)
        try:
            result = await self.read_contract(
                address, EIP1271_ABI, "isValidSignature", [digest, sig_bytes]
            )
        except ChainCallFailedError as e:
            # A reverting isValidSignature means the wallet rejected the signature
            logger.info("EIP-1271 check reverted for %s: %s", address, e.cause)
            return False
        return bytes(result)[:4] == EIP1271_MAGIC_VALUE

    async def _sign_and_send(self, w3: Any, tx: dict[str, Any]) -> str:
        from web3 import Web3

        signed_tx = w3.eth.account.sign_transaction(tx, private_key=self._private_key)
        tx_hash = await w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def write_contract(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: list[Any],
    ) -> str:
        w3 = self._ensure_web3()
        try:
            contract = w3.eth.contract(address=self._checksum(address), abi=abi)
            func = getattr(contract.functions, function_name)
            async with self._send_lock:
                tx = await func(*args).build_transaction(
                    {
                        "from": self._address,
                        "nonce": await w3.eth.get_transaction_count(self._address, "pending"),
                        "chainId": await w3.eth.chain_id,
                    }
                )
                return await self._sign_and_send(w3, tx)
        except Exception as e:
            logger.error(
                "Contract write failed: %s",
                e,
                exc_info=True,
                extra={"method": function_name, "contract": address, "network": self.network},
            )
            raise ChainCallFailedError(self.network, e) from e

    async def send_transaction(self, to: str, data: bytes) -> str:
        w3 = self._ensure_web3()
        try:
            async with self._send_lock:
                tx: dict[str, Any] = {
                    "from": self._address,
                    "to": self._checksum(to),
                    "data": data,
                    "value": 0,
                    "nonce": await w3.eth.get_transaction_count(self._address, "pending"),
                    "chainId": await w3.eth.chain_id,
                }
                tx["gas"] = await w3.eth.estimate_gas(tx)
                tx["gasPrice"] = await w3.eth.gas_price
                return await self._sign_and_send(w3, tx)
        except Exception as e:
            logger.error(
                "Transaction send failed: %s",
                e,
                exc_info=True,
                extra={"to": to, "network": self.network},
            )
            raise ChainCallFailedError(self.network, e) from e

    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: float = 120,
    ) -> dict[str, Any]:
        """Wait for EVM transaction confirmation"""
        from web3.exceptions import TimeExhausted

        w3 = self._ensure_web3()
        try:
            receipt = await w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise TransactionTimeoutError(self.network, e) from e
        except Exception as e:
            raise ChainCallFailedError(self.network, e) from e

        return {
            "hash": tx_hash,
            "blockNumber": str(receipt["blockNumber"]),
            "status": "confirmed" if receipt["status"] == 1 else "failed",
            "receipt": receipt,
        }
