"""
Numeric values as they appear in Pact JSON.

The ledger encodes a number in one of several shapes depending on its Pact
type and magnitude:

    12            plain JSON integer
    12.5          plain JSON float (decimal)
    {"int": 12}   tagged integer (value may also be a numeric string)
    {"decimal": "12.5"}  tagged decimal (string keeps full precision)

`decode_number` maps every shape onto a small tagged union. Anything else,
including booleans, bare strings and NaN/Infinity, becomes `Unparsable` so a
caller comparing balances or rewards can fail closed instead of reading a
silent zero.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Union

__all__ = [
    "PactInt",
    "PactDecimal",
    "Unparsable",
    "PactNumber",
    "decode_number",
    "as_decimal",
    "as_int",
    "pact_int",
    "pact_decimal",
]

_INT_RE = re.compile(r"^-?\d+$")


@dataclass(frozen=True)
class PactInt:
    value: int

    def to_decimal(self) -> Decimal:
        return Decimal(self.value)


@dataclass(frozen=True)
class PactDecimal:
    value: Decimal

    def to_decimal(self) -> Decimal:
        return self.value


@dataclass(frozen=True)
class Unparsable:
    raw: Any


PactNumber = Union[PactInt, PactDecimal, Unparsable]


def _finite_decimal(value: Any) -> Optional[Decimal]:
    try:
        d = Decimal(value if not isinstance(value, float) else repr(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    return d if d.is_finite() else None


def _decode_tagged_int(v: Any) -> PactNumber:
    if isinstance(v, bool):
        return Unparsable({"int": v})
    if isinstance(v, int):
        return PactInt(v)
    if isinstance(v, float) and v.is_integer():
        return PactInt(int(v))
    if isinstance(v, str) and _INT_RE.match(v.strip()):
        return PactInt(int(v.strip()))
    return Unparsable({"int": v})


def _decode_tagged_decimal(v: Any) -> PactNumber:
    if isinstance(v, bool) or not isinstance(v, (str, int, float)):
        return Unparsable({"decimal": v})
    d = _finite_decimal(v.strip() if isinstance(v, str) else v)
    return PactDecimal(d) if d is not None else Unparsable({"decimal": v})


def decode_number(raw: Any) -> PactNumber:
    if isinstance(raw, bool):
        return Unparsable(raw)
    if isinstance(raw, int):
        return PactInt(raw)
    if isinstance(raw, float):
        d = _finite_decimal(raw)
        return PactDecimal(d) if d is not None else Unparsable(raw)
    if isinstance(raw, Mapping) and len(raw) == 1:
        if "int" in raw:
            return _decode_tagged_int(raw["int"])
        if "decimal" in raw:
            return _decode_tagged_decimal(raw["decimal"])
    return Unparsable(raw)


def as_decimal(raw: Any) -> Optional[Decimal]:
    """Decimal value of any known shape, or None when unparsable."""
    n = decode_number(raw)
    if isinstance(n, Unparsable):
        return None
    return n.to_decimal()


def as_int(raw: Any) -> Optional[int]:
    n = decode_number(raw)
    if isinstance(n, PactInt):
        return n.value
    if isinstance(n, PactDecimal) and n.value == n.value.to_integral_value():
        return int(n.value)
    return None


def pact_int(value: int) -> Dict[str, int]:
    """JSON form of a Pact integer for capability arguments and env data."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("pact_int expects an int")
    return {"int": value}


def pact_decimal(value: Union[Decimal, int, str]) -> Dict[str, str]:
    """JSON form of a Pact decimal with full precision."""
    d = _finite_decimal(value)
    if d is None:
        raise ValueError(f"not a finite decimal: {value!r}")
    return {"decimal": format(d, "f")}
