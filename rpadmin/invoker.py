from typing import Any, Optional, Sequence, Union

from .abi import check_arguments
from .errors import UsageError
from .models import CallRequest, ContractRef, TransactionOutcome
from .submitter import TransactionSubmitter
from .transports import ChainClient


class ContractInvoker:
    """Call methods of resolved contracts, either as queries or as transactions."""

    def __init__(self, chain: ChainClient, submitter: TransactionSubmitter):
        self.chain = chain
        self.submitter = submitter

    def prepare(
        self,
        ref: ContractRef,
        method: str,
        args: Sequence[Any],
        *,
        sender: Optional[str] = None,
        value: int = 0,
        gas_limit: Optional[int] = None,
    ) -> CallRequest:
        """Check ``method`` and ``args`` against the ABI without any network access."""
        sig = ref.method(method, len(args))
        check_arguments(ref.name, sig, args)
        return CallRequest(
            contract=ref,
            method=sig,
            args=tuple(args),
            sender=sender,
            value=value,
            gas_limit=gas_limit,
        )

    async def invoke(
        self,
        ref: ContractRef,
        method: str,
        args: Sequence[Any] = (),
        *,
        state_changing: bool = False,
        sender: Optional[str] = None,
        value: int = 0,
        gas_limit: Optional[int] = None,
    ) -> Union[Any, TransactionOutcome]:
        request = self.prepare(ref, method, args, sender=sender, value=value, gas_limit=gas_limit)
        if not state_changing:
            if not request.method.read_only:
                raise UsageError(f"{request.label} changes state and must be sent as a transaction")
            if value:
                raise UsageError(f"read-only call {request.label} cannot carry value")
            return await self.chain.call(ref, request.method, request.args, sender)
        return await self.submitter.submit(request)
