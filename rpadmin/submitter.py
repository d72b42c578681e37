"""Send transactions with a fixed gas ceiling and wait for their receipts.

Nothing here retries. A receipt wait that runs out of time surfaces as
SubmissionError while the transaction itself stays pending on chain.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .abi import check_arguments
from .config import DEFAULT_GAS_LIMIT, DEFAULT_RECEIPT_TIMEOUT
from .errors import SignatureError, UsageError
from .models import CallRequest, ContractRef, TransactionOutcome
from .storage import OUTBOX_FILE, append_jsonl
from .transports import ChainClient

logger = logging.getLogger(__name__)


class TransactionSubmitter:
    def __init__(
        self,
        chain: ChainClient,
        *,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        audit_log: bool = False,
        audit_dir: Optional[Path] = None,
    ):
        self.chain = chain
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout
        self.audit_log = audit_log
        self.audit_dir = audit_dir

    def _record(self, event: str, data: Dict[str, Any]) -> None:
        if not self.audit_log:
            return
        entry = {"event": event, "ts": int(time.time())}
        entry.update(data)
        try:
            append_jsonl(OUTBOX_FILE, entry, base=self.audit_dir)
        except OSError as e:
            logger.warning("could not write audit log: %s", e)

    def _gas_for(self, requested: Optional[int]) -> int:
        gas = requested or self.gas_limit
        if gas > self.gas_limit:
            raise UsageError(f"gas limit {gas} exceeds the configured ceiling {self.gas_limit}")
        return gas

    async def submit(self, request: CallRequest) -> TransactionOutcome:
        check_arguments(request.contract.name, request.method, request.args)
        if request.value and not request.method.payable:
            raise SignatureError(f"{request.label} is not payable but {request.value} wei was attached")
        if request.value < 0:
            raise UsageError("attached value cannot be negative")
        gas = self._gas_for(request.gas_limit)

        sender = request.sender or await self.chain.default_sender()
        logger.info("submitting %s(%s) from %s", request.label, ", ".join(map(str, request.args)), sender)
        tx_hash = await self.chain.send(
            request.contract,
            request.method,
            request.args,
            sender=sender,
            value=request.value,
            gas_limit=gas,
        )
        self._record("sent", {
            "tx_hash": tx_hash,
            "call": request.label,
            "to": request.contract.address,
            "from": sender,
            "value": request.value,
        })
        return await self._confirm(tx_hash, request.label, gas, request.contract)

    async def transfer(self, to: str, value: int, sender: Optional[str] = None, gas_limit: Optional[int] = None) -> TransactionOutcome:
        if value <= 0:
            raise UsageError("transfer amount must be positive")
        gas = self._gas_for(gas_limit)
        sender = sender or await self.chain.default_sender()
        tx_hash = await self.chain.send_value(sender=sender, to=to, value=value, gas_limit=gas)
        self._record("sent", {"tx_hash": tx_hash, "call": "transfer", "to": to, "from": sender, "value": value})
        return await self._confirm(tx_hash, f"transfer to {to}", gas)

    async def _confirm(self, tx_hash: str, label: str, gas: int, ref: Optional[ContractRef] = None) -> TransactionOutcome:
        receipt = await self.chain.wait_for_receipt(tx_hash, self.receipt_timeout)
        gas_used = receipt.get("gasUsed")
        outcome = TransactionOutcome(
            success=int(receipt.get("status", 1)) == 1,
            tx_hash=tx_hash,
            block_number=receipt.get("blockNumber"),
            gas_used=gas_used,
            label=label,
        )
        if outcome.success:
            if ref is not None:
                outcome.emitted_events = self.chain.decode_events(ref, receipt)
            logger.info("%s included in block %s (gas %s)", tx_hash, outcome.block_number, gas_used)
        else:
            if gas_used is not None and gas_used >= gas:
                reason: Optional[str] = f"out of gas (used {gas_used} of {gas})"
            else:
                reason = await self.chain.revert_reason(tx_hash, receipt)
            outcome.error_message = reason or "reverted without a reason"
            logger.warning("%s failed in block %s: %s", tx_hash, outcome.block_number, outcome.error_message)

        self._record("confirmed" if outcome.success else "failed", {
            "tx_hash": tx_hash,
            "call": label,
            "block": outcome.block_number,
            "error": outcome.error_message,
        })
        return outcome
