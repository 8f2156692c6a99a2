"""
cyberfly_sdk.wallet.signer
==========================

Ed25519 signer over the `cryptography` package.

Kadena signs the 32-byte blake2b command hash directly (no extra pre-hash or
domain tag), so `sign()` takes raw bytes and returns the 64-byte signature
hex-encoded, the form expected in a command's `sigs` list.
"""

from __future__ import annotations

import binascii

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (Ed25519PrivateKey,
                                                               Ed25519PublicKey)

from ..errors import SigningError

__all__ = ["Ed25519Signer", "verify_signature"]


def _decode_key(hex_str: str, what: str) -> bytes:
    if not isinstance(hex_str, str) or not hex_str:
        raise SigningError(f"{what} is missing")
    try:
        raw = binascii.unhexlify(hex_str)
    except (binascii.Error, ValueError) as e:
        raise SigningError(f"{what} is not valid hex") from e
    if len(raw) != 32:
        raise SigningError(f"{what} must be 32 bytes, got {len(raw)}")
    return raw


class Ed25519Signer:
    """Holds one Ed25519 private key; never exposes it through repr/str."""

    __slots__ = ("_sk", "_public_key_hex")

    def __init__(self, secret_key_hex: str) -> None:
        self._sk = Ed25519PrivateKey.from_private_bytes(
            _decode_key(secret_key_hex, "secret key")
        )
        pub = self._sk.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self._public_key_hex = pub.hex()

    def __repr__(self) -> str:
        return f"Ed25519Signer(public_key={self._public_key_hex})"

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    def sign(self, message: bytes) -> str:
        return self._sk.sign(bytes(message)).hex()


def verify_signature(public_key_hex: str, message: bytes, signature_hex: str) -> bool:
    """Verify a hex signature; malformed inputs verify as False."""
    try:
        pub = Ed25519PublicKey.from_public_bytes(_decode_key(public_key_hex, "public key"))
        sig = binascii.unhexlify(signature_hex)
    except (SigningError, binascii.Error, ValueError):
        return False
    if len(sig) != 64:
        return False
    try:
        pub.verify(sig, bytes(message))
    except InvalidSignature:
        return False
    return True
