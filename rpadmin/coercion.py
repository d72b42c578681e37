"""Turn command-line tokens into typed contract-call arguments.

Coercion never touches the network: every token of a command is checked
before anything is resolved or sent.
"""

import enum
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from web3 import Web3

from .errors import ArityError, CoercionError

_INT_RE = re.compile(r"[+-]?[0-9]+")


class ParamType(enum.Enum):
    BOOL = "bool"
    INTEGER = "integer"
    ADDRESS = "address"
    STRING = "string"


class BoolMode(enum.Enum):
    # "true" / "false" only.
    LITERAL = "literal"
    # Any base-10 integer, non-zero is true.
    NUMERIC = "numeric"


@dataclass(frozen=True)
class SettingDescriptor:
    """Typed shape of one command or setting.

    With ``variadic`` set, the last entry of ``types`` applies to every
    token after the fixed ones and those values arrive as a single list.
    ``contract``/``method``/``getter`` are only set for registry settings.
    """

    name: str
    types: Tuple[ParamType, ...]
    variadic: bool = False
    bool_mode: BoolMode = BoolMode.LITERAL
    contract: Optional[str] = None
    method: Optional[str] = None
    getter: Optional[str] = None
    description: str = ""
    labels: Tuple[str, ...] = ()

    @property
    def fixed_count(self) -> int:
        return len(self.types) - 1 if self.variadic else len(self.types)

    def usage(self) -> str:
        labels = list(self.labels) or [t.value for t in self.types]
        parts = [f"<{label}>" for label in labels[: self.fixed_count]]
        if self.variadic:
            parts.append(f"[{labels[-1]}...]")
        return " ".join(parts)


def coerce_bool(token: str, mode: BoolMode = BoolMode.LITERAL) -> bool:
    if mode is BoolMode.NUMERIC:
        if not _INT_RE.fullmatch(token):
            raise CoercionError(f"expected an integer flag (0 or 1), got {token!r}")
        return any(c not in "+-0" for c in token)
    if token == "true":
        return True
    if token == "false":
        return False
    raise CoercionError(f"expected 'true' or 'false', got {token!r}")


def coerce_integer(token: str) -> int:
    if not _INT_RE.fullmatch(token):
        raise CoercionError(f"expected a base-10 integer, got {token!r}")
    try:
        return int(token)
    except ValueError:
        # int() is capped by sys.get_int_max_str_digits().
        raise CoercionError(f"integer is too long: {len(token)} digits")


def coerce_address(token: str) -> str:
    if not Web3.is_address(token):
        raise CoercionError(f"invalid address (bad format or checksum): {token!r}")
    return Web3.to_checksum_address(token)


def coerce_token(ptype: ParamType, token: str, bool_mode: BoolMode = BoolMode.LITERAL) -> Any:
    if ptype is ParamType.BOOL:
        return coerce_bool(token, bool_mode)
    if ptype is ParamType.INTEGER:
        return coerce_integer(token)
    if ptype is ParamType.ADDRESS:
        return coerce_address(token)
    return token


def coerce(descriptor: SettingDescriptor, raw_tokens: Sequence[str]) -> Tuple[Any, ...]:
    tokens = list(raw_tokens)
    fixed = descriptor.fixed_count
    if descriptor.variadic:
        if len(tokens) < fixed:
            raise ArityError(
                f"{descriptor.name} expects at least {fixed} argument(s), got {len(tokens)}: {descriptor.usage()}"
            )
    elif len(tokens) != fixed:
        raise ArityError(f"{descriptor.name} expects {fixed} argument(s), got {len(tokens)}: {descriptor.usage()}")

    out: List[Any] = []
    for idx, (ptype, token) in enumerate(zip(descriptor.types[:fixed], tokens)):
        try:
            out.append(coerce_token(ptype, token, descriptor.bool_mode))
        except CoercionError as e:
            raise CoercionError(f"{descriptor.name} argument {idx + 1}: {e}")

    if descriptor.variadic:
        tail_type = descriptor.types[-1]
        tail: List[Any] = []
        for idx, token in enumerate(tokens[fixed:], start=fixed):
            try:
                tail.append(coerce_token(tail_type, token, descriptor.bool_mode))
            except CoercionError as e:
                raise CoercionError(f"{descriptor.name} argument {idx + 1}: {e}")
        out.append(tail)
    return tuple(out)
