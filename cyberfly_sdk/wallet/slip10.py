"""
SLIP-0010 hierarchical derivation for Ed25519.

Ed25519 only supports hardened children, so every path segment is hardened:

    I    = HMAC-SHA512(key=b"ed25519 seed", data=seed)          # master
    I    = HMAC-SHA512(key=chain_code, data=0x00 || k || ser32(i + 2^31))
    k, c = I[:32], I[32:]

Public keys follow the SLIP-0010 convention of a leading 0x00 byte (33 bytes);
use :func:`strip_key_prefix` to obtain the raw 32-byte Ed25519 key.
"""

from __future__ import annotations

import hashlib
import hmac
import re
from dataclasses import dataclass
from typing import List, Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

HARDENED_OFFSET = 0x80000000
_CURVE_KEY = b"ed25519 seed"
_SEGMENT_RE = re.compile(r"^(\d+)['hH]$")


@dataclass(frozen=True)
class ExtendedKey:
    key: bytes  # 32-byte Ed25519 private seed
    chain_code: bytes

    def public_key(self) -> bytes:
        """SLIP-0010 formatted public key: 0x00 || 32-byte Ed25519 key."""
        return b"\x00" + ed25519_public_key(self.key)


def ed25519_public_key(private_key: bytes) -> bytes:
    """Raw 32-byte Ed25519 public key for a 32-byte private seed."""
    sk = Ed25519PrivateKey.from_private_bytes(private_key)
    return sk.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def strip_key_prefix(public_key: bytes) -> bytes:
    """Drop the leading key-type byte from a 33-byte public key."""
    if len(public_key) == 33:
        return public_key[1:]
    if len(public_key) != 32:
        raise ValueError(f"unexpected public key length: {len(public_key)}")
    return public_key


def _split(digest: bytes) -> Tuple[bytes, bytes]:
    return digest[:32], digest[32:]


def master_key(seed: bytes) -> ExtendedKey:
    if not 16 <= len(seed) <= 64:
        raise ValueError("seed must be between 16 and 64 bytes")
    k, c = _split(hmac.new(_CURVE_KEY, seed, hashlib.sha512).digest())
    return ExtendedKey(key=k, chain_code=c)


def derive_child(parent: ExtendedKey, index: int) -> ExtendedKey:
    """Hardened child derivation; `index` is the un-hardened index."""
    if not 0 <= index < HARDENED_OFFSET:
        raise ValueError(f"index out of range: {index}")
    data = b"\x00" + parent.key + (index + HARDENED_OFFSET).to_bytes(4, "big")
    k, c = _split(hmac.new(parent.chain_code, data, hashlib.sha512).digest())
    return ExtendedKey(key=k, chain_code=c)


def parse_path(path: str) -> List[int]:
    """
    Parse "m/44'/626'/0'" into [44, 626, 0]. Non-hardened segments are rejected
    because Ed25519 cannot derive them.
    """
    parts = path.strip().split("/")
    if not parts or parts[0] != "m":
        raise ValueError(f"path must start with 'm': {path!r}")
    out: List[int] = []
    for seg in parts[1:]:
        m = _SEGMENT_RE.match(seg)
        if not m:
            raise ValueError(f"ed25519 supports hardened segments only: {seg!r}")
        out.append(int(m.group(1)))
    return out


def derive_path(seed: bytes, path: str) -> ExtendedKey:
    node = master_key(seed)
    for index in parse_path(path):
        node = derive_child(node, index)
    return node


__all__ = [
    "HARDENED_OFFSET",
    "ExtendedKey",
    "ed25519_public_key",
    "strip_key_prefix",
    "master_key",
    "derive_child",
    "parse_path",
    "derive_path",
]
