"""
Typed Pact script builder.

Every argument is rendered by an explicit, type-directed encoder, so an
account name or peer id containing quotes or parentheses stays a single string
literal and can never change the shape of the call. For instance the peer id
`a" (drop-table) "` renders as one escaped string argument of `get-node`.

Supported argument types:
  - str       -> double-quoted, backslash-escaped string literal
  - bool      -> true / false
  - int       -> integer literal
  - Decimal / float -> decimal literal (always with a fractional part)
  - Expr      -> trusted sub-expression built by this module (e.g. read_keyset)
"""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Union

__all__ = ["Expr", "Arg", "literal", "decimal_literal", "call", "read_keyset", "check_name"]

_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_\-.]*$")
_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}


class Expr:
    """A pre-rendered Pact expression. Only produced by builders in this module."""

    __slots__ = ("text",)

    def __init__(self, text: str) -> None:
        self.text = text

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"Expr({self.text!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Expr) and other.text == self.text

    def __hash__(self) -> int:
        return hash(self.text)


Arg = Union[str, bool, int, float, Decimal, Expr]


def check_name(name: str) -> str:
    """Validate a qualified Pact name (module, function or capability)."""
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise ValueError(f"invalid Pact name: {name!r}")
    return name


def _string_literal(value: str) -> str:
    out = []
    for ch in value:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            raise ValueError(f"control character {ord(ch):#04x} not allowed in Pact string")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def decimal_literal(value: Union[Decimal, float, int]) -> str:
    """Render a Pact decimal; Pact requires a fractional part ("50000.0")."""
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError("decimal literal must be finite")
        value = Decimal(repr(value))
    d = Decimal(value)
    if not d.is_finite():
        raise ValueError("decimal literal must be finite")
    text = format(d, "f")
    if "." not in text:
        text += ".0"
    return text


def literal(value: Arg) -> str:
    # bool before int: bool is a subclass of int
    if isinstance(value, Expr):
        return value.text
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (Decimal, float)):
        return decimal_literal(value)
    if isinstance(value, str):
        return _string_literal(value)
    raise TypeError(f"unsupported Pact argument type: {type(value).__name__}")


def call(function: str, *args: Arg) -> str:
    """Render `(function arg1 arg2 ...)`."""
    parts = [check_name(function)] + [literal(a) for a in args]
    return "(" + " ".join(parts) + ")"


def read_keyset(name: str) -> Expr:
    return Expr(call("read-keyset", name))
