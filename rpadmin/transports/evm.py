"""web3.py transport: AsyncWeb3 over HTTP, node-managed or locally signed sends."""

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional, Sequence, Type

import aiohttp
from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import (
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3Exception,
)
from web3.logs import DISCARD

from ..abi import MethodSignature, event_names
from ..errors import ChainError, ConfigError, ContractRevert, SubmissionError, TransactionFailed
from ..models import ContractRef
from .base import ChainClient

logger = logging.getLogger(__name__)

_REVERT_PREFIX = "execution reverted"


def _revert_text(exc: ContractLogicError) -> Optional[str]:
    msg = getattr(exc, "message", None) or str(exc)
    if not msg.startswith(_REVERT_PREFIX):
        return msg or None
    reason = msg[len(_REVERT_PREFIX):].lstrip(": ").strip()
    return reason or None


class Web3ChainClient(ChainClient):
    def __init__(
        self,
        rpc_url: str,
        *,
        request_timeout: float = 30.0,
        private_key: Optional[str] = None,
        from_address: Optional[str] = None,
        poll_latency: float = 0.5,
    ):
        self.rpc_url = rpc_url
        self.poll_latency = poll_latency
        self.w3 = AsyncWeb3(AsyncHTTPProvider(
            rpc_url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=request_timeout)},
        ))
        self._account = None
        if private_key:
            try:
                self._account = Account.from_key(private_key)
            except (ValueError, TypeError) as e:
                raise ConfigError(f"invalid private key: {e}")
        self._from_address: Optional[str] = None
        if from_address:
            if not Web3.is_address(from_address):
                raise ConfigError(f"invalid from address: {from_address!r}")
            self._from_address = Web3.to_checksum_address(from_address)
        if self._account and self._from_address and self._account.address != self._from_address:
            raise ConfigError(f"from address {self._from_address} does not match the configured private key")
        self._sender: Optional[str] = None
        self._chain: Optional[int] = None
        self._nonce_lock = asyncio.Lock()
        self._next_nonce: Dict[str, int] = {}

    async def _guard(self, what: str, aw: Awaitable[Any], rejected: Type[ChainError]) -> Any:
        try:
            return await aw
        except ContractLogicError as e:
            raise ContractRevert(f"{what} reverted", _revert_text(e))
        except (aiohttp.ClientError, ProviderConnectionError, asyncio.TimeoutError, OSError) as e:
            raise SubmissionError(f"{what}: cannot reach {self.rpc_url}: {e}")
        except Web3Exception as e:
            raise rejected(f"{what} rejected by node", str(e))

    def _contract(self, ref: ContractRef):
        return self.w3.eth.contract(address=ref.address, abi=list(ref.abi))

    # ── Identity ──

    async def network_id(self) -> str:
        return str(await self._guard("net_version", self.w3.net.version, SubmissionError))

    async def accounts(self) -> List[str]:
        return list(await self._guard("eth_accounts", self.w3.eth.accounts, SubmissionError))

    async def default_sender(self) -> str:
        if self._sender:
            return self._sender
        if self._account is not None:
            self._sender = self._account.address
        elif self._from_address:
            self._sender = self._from_address
        else:
            accounts = await self.accounts()
            if not accounts:
                raise ConfigError("node exposes no accounts; set from_address or private_key")
            self._sender = Web3.to_checksum_address(accounts[0])
        return self._sender

    # ── Calls ──

    async def call(self, ref: ContractRef, sig: MethodSignature, args: Sequence[Any], sender: Optional[str] = None) -> Any:
        fn = self._contract(ref).get_function_by_signature(sig.selector_text)(*args)
        params = {"from": sender} if sender else {}
        return await self._guard(f"{ref.name}.{sig.name}", fn.call(params), ContractRevert)

    async def _chain_id(self) -> int:
        if self._chain is None:
            self._chain = await self.w3.eth.chain_id
        return self._chain

    async def _allocate_nonce(self, sender: str) -> int:
        async with self._nonce_lock:
            if sender not in self._next_nonce:
                self._next_nonce[sender] = await self.w3.eth.get_transaction_count(sender, "pending")
            nonce = self._next_nonce[sender]
            self._next_nonce[sender] = nonce + 1
            return nonce

    async def _send_signed(self, tx: Dict[str, Any], build: Optional[Any] = None) -> str:
        assert self._account is not None
        sender = tx["from"]
        tx["nonce"] = await self._allocate_nonce(sender)
        try:
            tx["chainId"] = await self._chain_id()
            if build is not None:
                tx = await build.build_transaction(tx)
            elif "gasPrice" not in tx:
                tx["gasPrice"] = await self.w3.eth.gas_price
            signed = self._account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception:
            # The allocated nonce was not consumed; refetch it next time.
            self._next_nonce.pop(sender, None)
            raise
        return Web3.to_hex(tx_hash)

    async def send(
        self,
        ref: ContractRef,
        sig: MethodSignature,
        args: Sequence[Any],
        *,
        sender: str,
        value: int,
        gas_limit: int,
    ) -> str:
        fn = self._contract(ref).get_function_by_signature(sig.selector_text)(*args)
        tx: Dict[str, Any] = {"from": sender, "value": value, "gas": gas_limit}

        async def _do() -> str:
            if self._account is not None:
                return await self._send_signed(tx, build=fn)
            return Web3.to_hex(await fn.transact(tx))

        tx_hash = await self._guard(f"{ref.name}.{sig.name}", _do(), TransactionFailed)
        logger.info("sent %s.%s from %s: %s", ref.name, sig.name, sender, tx_hash)
        return tx_hash

    async def send_value(self, *, sender: str, to: str, value: int, gas_limit: int) -> str:
        tx: Dict[str, Any] = {"from": sender, "to": to, "value": value, "gas": gas_limit}

        async def _do() -> str:
            if self._account is not None:
                return await self._send_signed(tx)
            return Web3.to_hex(await self.w3.eth.send_transaction(tx))

        tx_hash = await self._guard(f"transfer to {to}", _do(), TransactionFailed)
        logger.info("sent %d wei from %s to %s: %s", value, sender, to, tx_hash)
        return tx_hash

    # ── Receipts ──

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> Dict[str, Any]:
        async def _wait() -> Any:
            try:
                return await self.w3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=timeout, poll_latency=self.poll_latency
                )
            except TimeExhausted:
                raise SubmissionError(
                    f"transaction {tx_hash} was not included within {timeout:g}s; "
                    "it may still be pending on chain and has not been resubmitted"
                )

        receipt = await self._guard(f"receipt {tx_hash}", _wait(), SubmissionError)
        return dict(receipt)

    def decode_events(self, ref: ContractRef, receipt: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
        contract = self._contract(ref)
        out: Dict[str, List[Dict[str, Any]]] = {}
        for name in event_names(ref.abi):
            event = contract.events[name]()
            for log in event.process_receipt(receipt, errors=DISCARD):
                out.setdefault(name, []).append(dict(log["args"]))
        return out

    async def revert_reason(self, tx_hash: str, receipt: Dict[str, Any]) -> Optional[str]:
        """Replay a failed transaction as a call to recover the revert reason."""
        try:
            tx = await self.w3.eth.get_transaction(tx_hash)
            await self.w3.eth.call(
                {"from": tx["from"], "to": tx["to"], "data": tx["input"], "value": tx["value"], "gas": tx["gas"]},
                receipt.get("blockNumber"),
            )
        except ContractLogicError as e:
            return _revert_text(e)
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.debug("could not replay %s for a revert reason: %s", tx_hash, e)
        return None

    async def close(self) -> None:
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
