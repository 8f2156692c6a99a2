"""
Mnemonic helpers (BIP-39) → deterministic seed.

Design notes
------------
- Generation, checksum validation and seed derivation all go through the
  widely used `mnemonic` (Trezor) package, so phrases and seeds are standard
  BIP-39 and interoperate with other Kadena wallets:

    PBKDF2-HMAC-SHA512(
        password = NFKD(mnemonic),
        salt     = b"mnemonic" + NFKD(passphrase),
        iter     = 2048,
        dkLen    = 64
    )  -> 64-byte seed

- Import: any valid English phrase of 12/15/18/21/24 words is accepted.
  Whitespace is normalized before the checksum check.
"""

from __future__ import annotations

import unicodedata

from mnemonic import Mnemonic

# words -> entropy bits
_STRENGTHS = {12: 128, 15: 160, 18: 192, 21: 224, 24: 256}

_WORDLIST = Mnemonic("english")


def generate_mnemonic(num_words: int = 12) -> str:
    """
    Create a new BIP-39 English mnemonic. Entropy comes from `os.urandom`
    (inside the `mnemonic` package), so two calls never return the same phrase.
    """
    if num_words not in _STRENGTHS:
        raise ValueError(f"num_words must be one of {sorted(_STRENGTHS)}")
    return _WORDLIST.generate(strength=_STRENGTHS[num_words])


def normalize_phrase(phrase: str) -> str:
    """NFKD-normalize, lowercase and collapse whitespace."""
    words = unicodedata.normalize("NFKD", phrase).strip().lower().split()
    return " ".join(words)


def validate_mnemonic(phrase: str) -> bool:
    """Word count and checksum validation only; derives nothing."""
    if not isinstance(phrase, str):
        return False
    normalized = normalize_phrase(phrase)
    if len(normalized.split(" ")) not in _STRENGTHS:
        return False
    try:
        return bool(_WORDLIST.check(normalized))
    except (ValueError, LookupError):
        # unknown words surface as lookup failures inside the checksum
        return False


def mnemonic_to_seed(phrase: str, passphrase: str = "") -> bytes:
    """Convert a mnemonic phrase to the standard 64-byte BIP-39 seed."""
    return Mnemonic.to_seed(normalize_phrase(phrase), passphrase=passphrase)


__all__ = [
    "generate_mnemonic",
    "normalize_phrase",
    "validate_mnemonic",
    "mnemonic_to_seed",
]
