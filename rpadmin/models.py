from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .abi import MethodSignature, event_names, find_method
from .errors import TransactionFailed


@dataclass(frozen=True)
class ContractRef:
    name: str
    address: str
    abi: Sequence[Dict[str, Any]] = field(repr=False, compare=False)
    network_id: Optional[str] = None

    def method(self, name: str, arity: int) -> MethodSignature:
        return find_method(self.name, self.abi, name, arity)

    @property
    def events(self) -> List[str]:
        return event_names(self.abi)


@dataclass(frozen=True)
class CallRequest:
    contract: ContractRef
    method: MethodSignature
    args: Tuple[Any, ...]
    sender: Optional[str] = None
    value: int = 0
    gas_limit: Optional[int] = None

    @property
    def label(self) -> str:
        return f"{self.contract.name}.{self.method.name}"


@dataclass
class TransactionOutcome:
    success: bool
    tx_hash: str
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    emitted_events: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    error_message: Optional[str] = None
    label: str = ""

    def raise_for_status(self) -> "TransactionOutcome":
        if not self.success:
            raise TransactionFailed(
                f"transaction {self.tx_hash} ({self.label or 'transfer'}) failed",
                reason=self.error_message,
                tx_hash=self.tx_hash,
            )
        return self

    def event_field(self, event: str, name: str) -> Any:
        """First value of ``name`` among the ``event`` logs, or None."""
        for entry in self.emitted_events.get(event, []):
            if name in entry:
                return entry[name]
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
            "gas_used": self.gas_used,
            "events": self.emitted_events,
            "error": self.error_message,
        }
