import abc
from typing import Any, Dict, List, Optional, Sequence

from ..abi import MethodSignature
from ..models import ContractRef


class ChainClient(abc.ABC):
    """The RPC capabilities rpadmin needs from a node.

    Implementations translate transport failures into SubmissionError,
    reverts into ContractRevert and node-side rejections of a send into
    TransactionFailed.
    """

    @abc.abstractmethod
    async def network_id(self) -> str: ...

    @abc.abstractmethod
    async def accounts(self) -> List[str]: ...

    @abc.abstractmethod
    async def default_sender(self) -> str: ...

    @abc.abstractmethod
    async def call(self, ref: ContractRef, sig: MethodSignature, args: Sequence[Any], sender: Optional[str] = None) -> Any: ...

    @abc.abstractmethod
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
        """Submit a state-changing call and return the transaction hash."""

    @abc.abstractmethod
    async def send_value(self, *, sender: str, to: str, value: int, gas_limit: int) -> str: ...

    @abc.abstractmethod
    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> Dict[str, Any]: ...

    @abc.abstractmethod
    def decode_events(self, ref: ContractRef, receipt: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]: ...

    async def revert_reason(self, tx_hash: str, receipt: Dict[str, Any]) -> Optional[str]:
        return None

    async def close(self) -> None:
        return None
