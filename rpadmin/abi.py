"""ABI lookups and the pre-flight argument check.

Only the scalar and array types the admin commands actually pass are
accepted; a tuple/struct input makes the method uncallable from here.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from web3 import Web3

from .errors import SignatureError, UnknownMethod

_INT_RE = re.compile(r"^(u?)int([0-9]{0,3})$")
_BYTES_RE = re.compile(r"^bytes([0-9]{1,2})$")


@dataclass(frozen=True)
class MethodSignature:
    name: str
    inputs: Tuple[str, ...]
    input_names: Tuple[str, ...]
    outputs: Tuple[str, ...]
    mutability: str

    @property
    def selector_text(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def payable(self) -> bool:
        return self.mutability == "payable"

    @property
    def read_only(self) -> bool:
        return self.mutability in ("view", "pure")


def _mutability(entry: Dict[str, Any]) -> str:
    if "stateMutability" in entry:
        return str(entry["stateMutability"])
    # Pre-0.5 solc artifacts only carry constant/payable flags.
    if entry.get("constant"):
        return "view"
    if entry.get("payable"):
        return "payable"
    return "nonpayable"


def method_signatures(abi: Sequence[Dict[str, Any]], name: str) -> List[MethodSignature]:
    out: List[MethodSignature] = []
    for entry in abi:
        if entry.get("type", "function") != "function" or entry.get("name") != name:
            continue
        inputs = entry.get("inputs") or []
        outputs = entry.get("outputs") or []
        out.append(MethodSignature(
            name=name,
            inputs=tuple(str(i.get("type", "")) for i in inputs),
            input_names=tuple(str(i.get("name", "")) for i in inputs),
            outputs=tuple(str(o.get("type", "")) for o in outputs),
            mutability=_mutability(entry),
        ))
    return out


def find_method(contract_name: str, abi: Sequence[Dict[str, Any]], name: str, arity: int) -> MethodSignature:
    """Return the single ABI method called ``name`` that takes ``arity`` inputs."""
    candidates = method_signatures(abi, name)
    if not candidates:
        raise UnknownMethod(contract_name, name)
    matching = [sig for sig in candidates if len(sig.inputs) == arity]
    if not matching:
        raise UnknownMethod(contract_name, name, arity)
    if len(matching) > 1:
        texts = ", ".join(sig.selector_text for sig in matching)
        raise UnknownMethod(contract_name, f"{name} (ambiguous overloads: {texts})", arity)
    return matching[0]


def event_names(abi: Sequence[Dict[str, Any]]) -> List[str]:
    return [str(e["name"]) for e in abi if e.get("type") == "event" and e.get("name")]


def _type_error(abi_type: str, value: Any) -> Optional[str]:
    if abi_type.endswith("]"):
        inner, _, size = abi_type[:-1].rpartition("[")
        if not isinstance(value, (list, tuple)):
            return f"expected a list for {abi_type}, got {type(value).__name__}"
        if size and len(value) != int(size):
            return f"expected {size} items for {abi_type}, got {len(value)}"
        for item in value:
            err = _type_error(inner, item)
            if err:
                return err
        return None

    if abi_type == "bool":
        return None if isinstance(value, bool) else f"expected bool, got {type(value).__name__}"

    if abi_type == "address":
        if isinstance(value, str) and Web3.is_checksum_address(value):
            return None
        return f"expected a checksummed address, got {value!r}"

    if abi_type == "string":
        return None if isinstance(value, str) else f"expected string, got {type(value).__name__}"

    if abi_type == "bytes":
        return None if isinstance(value, (bytes, bytearray)) else f"expected bytes, got {type(value).__name__}"

    m = _BYTES_RE.match(abi_type)
    if m:
        size = int(m.group(1))
        if not isinstance(value, (bytes, bytearray)):
            return f"expected {abi_type}, got {type(value).__name__}"
        if len(value) != size:
            return f"expected {size} bytes for {abi_type}, got {len(value)}"
        return None

    m = _INT_RE.match(abi_type)
    if m:
        if isinstance(value, bool) or not isinstance(value, int):
            return f"expected integer for {abi_type}, got {type(value).__name__}"
        bits = int(m.group(2) or "256")
        if m.group(1):
            lo, hi = 0, 2 ** bits - 1
        else:
            lo, hi = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
        if not lo <= value <= hi:
            return f"{value} is out of range for {abi_type}"
        return None

    return f"unsupported ABI type {abi_type}"


def check_arguments(contract_name: str, sig: MethodSignature, args: Sequence[Any]) -> None:
    """Raise SignatureError unless ``args`` fit ``sig`` exactly."""
    if len(args) != len(sig.inputs):
        raise SignatureError(
            f"{contract_name}.{sig.selector_text} takes {len(sig.inputs)} argument(s), got {len(args)}"
        )
    for idx, (abi_type, value) in enumerate(zip(sig.inputs, args)):
        err = _type_error(abi_type, value)
        if err:
            label = sig.input_names[idx] or f"#{idx}"
            raise SignatureError(f"{contract_name}.{sig.selector_text} argument {label}: {err}")
