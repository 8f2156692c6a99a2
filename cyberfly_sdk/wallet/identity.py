"""
Node identity: recovery phrase → seed → Ed25519 keypair → Kadena account.

The derivation path is fixed at ``m/44'/626'/0'`` (626 = Kadena coin type).
Exposing other paths would silently produce different, unrecoverable
identities, so the deriver has none.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict

import base58

from ..errors import InvalidPhrase
from . import mnemonic as _mnemonic
from .signer import Ed25519Signer
from .slip10 import derive_path, strip_key_prefix

log = logging.getLogger(__name__)

DERIVATION_PATH = "m/44'/626'/0'"
ACCOUNT_PREFIX = "k:"

_ACCOUNT_RE = re.compile(r"^k:[0-9a-f]{64}$")

# libp2p: protobuf PublicKey{Type: Ed25519, Data: <32 bytes>} wrapped in an
# identity multihash (code 0x00, length 36).
_LIBP2P_ED25519_PREFIX = bytes([0x08, 0x01, 0x12, 0x20])
_IDENTITY_MULTIHASH = bytes([0x00, 0x24])


def account_id_for(public_key_hex: str) -> str:
    return ACCOUNT_PREFIX + public_key_hex.lower()


def is_account_id(value: str) -> bool:
    """True for `k:` followed by a 32-byte lowercase hex public key."""
    return isinstance(value, str) and bool(_ACCOUNT_RE.match(value))


@dataclass(frozen=True)
class Identity:
    public_key_hex: str
    secret_key_hex: str = field(repr=False)
    account_id: str

    def __post_init__(self) -> None:
        if self.account_id != account_id_for(self.public_key_hex):
            raise ValueError("account_id does not match public key")

    @classmethod
    def from_keys(cls, public_key_hex: str, secret_key_hex: str) -> "Identity":
        pub = public_key_hex.lower()
        return cls(public_key_hex=pub, secret_key_hex=secret_key_hex.lower(), account_id=account_id_for(pub))

    def to_json(self) -> Dict[str, str]:
        return {
            "publicKey": self.public_key_hex,
            "secretKey": self.secret_key_hex,
            "account": self.account_id,
        }

    @classmethod
    def from_json(cls, obj: Dict[str, Any]) -> "Identity":
        return cls(
            public_key_hex=str(obj["publicKey"]),
            secret_key_hex=str(obj["secretKey"]),
            account_id=str(obj["account"]),
        )


class IdentityDeriver:
    """Stateless: pure phrase → identity transforms."""

    path = DERIVATION_PATH

    def validate(self, phrase: str) -> bool:
        return _mnemonic.validate_mnemonic(phrase)

    def generate(self, num_words: int = 12) -> str:
        return _mnemonic.generate_mnemonic(num_words)

    def derive(self, phrase: str, passphrase: str = "") -> Identity:
        if not self.validate(phrase):
            raise InvalidPhrase()
        return self.derive_from_seed(_mnemonic.mnemonic_to_seed(phrase, passphrase))

    def derive_from_seed(self, seed: bytes) -> Identity:
        node = derive_path(seed, self.path)
        public_key = strip_key_prefix(node.public_key())
        identity = Identity.from_keys(public_key.hex(), node.key.hex())
        log.debug("derived identity account=%s", identity.account_id)
        return identity


def peer_id_from_secret_key(secret_key_hex: str) -> str:
    """
    libp2p PeerId (base58btc, "12D3KooW...") for the Ed25519 key the node
    runs with, so the ledger and the P2P layer agree on the node's id.
    """
    pub = bytes.fromhex(Ed25519Signer(secret_key_hex).public_key_hex)
    return base58.b58encode(_IDENTITY_MULTIHASH + _LIBP2P_ED25519_PREFIX + pub).decode("ascii")


__all__ = [
    "DERIVATION_PATH",
    "ACCOUNT_PREFIX",
    "Identity",
    "IdentityDeriver",
    "account_id_for",
    "is_account_id",
    "peer_id_from_secret_key",
]
