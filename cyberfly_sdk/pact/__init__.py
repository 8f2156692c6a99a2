"""
cyberfly_sdk.pact
=================

Pact command construction: typed script literals, numeric decoding, and the
signed command envelope.
"""

from .command import (Capability, LedgerCommand, Meta, SignatureEntry,
                      SignedCommand, SignerSpec, build_command, canonical_json,
                      hash_command, sign_command, unsigned_command)
from .literals import Expr, call, decimal_literal, literal, read_keyset
from .numbers import (PactDecimal, PactInt, Unparsable, as_decimal, as_int,
                      decode_number, pact_decimal, pact_int)

__all__ = [
    # literals
    "Expr", "call", "decimal_literal", "literal", "read_keyset",
    # numbers
    "PactInt", "PactDecimal", "Unparsable", "decode_number", "as_decimal",
    "as_int", "pact_int", "pact_decimal",
    # commands
    "Capability", "SignerSpec", "Meta", "LedgerCommand", "SignatureEntry",
    "SignedCommand", "build_command", "canonical_json", "hash_command",
    "sign_command", "unsigned_command",
]
