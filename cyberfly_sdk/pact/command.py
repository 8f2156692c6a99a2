"""
cyberfly_sdk.pact.command
=========================

Pact command envelope, canonical encoding, hashing and signing.

Wire shapes (Chainweb Pact API)::

    cmd  = {"networkId": .., "payload": {"exec": {"code": .., "data": {..}}},
            "signers": [{"pubKey": .., "clist": [{"name": .., "args": [..]}]}],
            "meta": {"chainId": .., "sender": .., "gasLimit": .., "gasPrice": ..,
                     "ttl": .., "creationTime": ..},
            "nonce": ..}
    signed = {"cmd": <canonical JSON string>, "hash": <b64url blake2b-256>,
              "sigs": [{"sig": <hex ed25519 over the raw hash bytes>}]}

The hash is always recomputed from `cmd`; a hash supplied from outside is
checked, never trusted.
"""

from __future__ import annotations

import base64
import hashlib
import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..errors import SigningError
from ..wallet.signer import Ed25519Signer
from .literals import check_name

__all__ = [
    "Capability",
    "SignerSpec",
    "Meta",
    "LedgerCommand",
    "SignatureEntry",
    "SignedCommand",
    "canonical_json",
    "hash_bytes",
    "hash_command",
    "make_nonce",
    "build_command",
    "sign_command",
    "unsigned_command",
]


def canonical_json(obj: Any) -> str:
    """Deterministic JSON text: sorted keys, compact separators, UTF-8 kept."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def hash_bytes(cmd: str) -> bytes:
    return hashlib.blake2b(cmd.encode("utf-8"), digest_size=32).digest()


def hash_command(cmd: str) -> str:
    """Unpadded base64url blake2b-256 of the command text (Pact request key)."""
    return _b64url(hash_bytes(cmd))


def make_nonce(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with microseconds; unique per submission."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="microseconds")


@dataclass(frozen=True)
class Capability:
    name: str
    args: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        check_name(self.name)
        object.__setattr__(self, "args", tuple(self.args))

    def to_json(self) -> Dict[str, Any]:
        return {"name": self.name, "args": list(self.args)}


@dataclass(frozen=True)
class SignerSpec:
    pub_key: str
    clist: Tuple[Capability, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"pubKey": self.pub_key}
        if self.clist:
            out["clist"] = [c.to_json() for c in self.clist]
        return out


@dataclass(frozen=True)
class Meta:
    chain_id: str
    sender: str
    gas_limit: int
    gas_price: Decimal
    ttl: int
    creation_time: int

    def to_json(self) -> Dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "sender": self.sender,
            "gasLimit": int(self.gas_limit),
            "gasPrice": float(self.gas_price),
            "ttl": int(self.ttl),
            "creationTime": int(self.creation_time),
        }


@dataclass(frozen=True)
class LedgerCommand:
    code: str
    data: Mapping[str, Any]
    meta: Meta
    network_id: str
    nonce: str
    signers: Tuple[SignerSpec, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {
            "networkId": self.network_id,
            "payload": {"exec": {"code": self.code, "data": dict(self.data)}},
            "signers": [s.to_json() for s in self.signers],
            "meta": self.meta.to_json(),
            "nonce": self.nonce,
        }

    def encode(self) -> str:
        return canonical_json(self.to_json())


@dataclass(frozen=True)
class SignatureEntry:
    public_key: str
    sig: str

    def to_json(self) -> Dict[str, str]:
        # The Pact API matches signatures to `signers` by position.
        return {"sig": self.sig}


@dataclass(frozen=True)
class SignedCommand:
    cmd: str
    hash: str
    sigs: Tuple[SignatureEntry, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        expected = hash_command(self.cmd)
        if self.hash != expected:
            raise ValueError(f"hash mismatch: got {self.hash!r}, expected {expected!r}")

    @classmethod
    def from_cmd(cls, cmd: str, sigs: Sequence[SignatureEntry] = ()) -> "SignedCommand":
        return cls(cmd=cmd, hash=hash_command(cmd), sigs=tuple(sigs))

    def to_json(self) -> Dict[str, Any]:
        return {"cmd": self.cmd, "hash": self.hash, "sigs": [s.to_json() for s in self.sigs]}


def build_command(
    code: str,
    *,
    network_id: str,
    chain_id: str,
    sender: str,
    gas_limit: int,
    gas_price: Decimal,
    ttl: int,
    data: Optional[Mapping[str, Any]] = None,
    signers: Sequence[SignerSpec] = (),
    nonce: Optional[str] = None,
    creation_time: Optional[int] = None,
) -> LedgerCommand:
    if not isinstance(code, str) or not code.strip():
        raise ValueError("code must be a non-empty Pact expression")
    meta = Meta(
        chain_id=chain_id,
        sender=sender,
        gas_limit=gas_limit,
        gas_price=Decimal(str(gas_price)),
        ttl=ttl,
        creation_time=int(time.time()) if creation_time is None else int(creation_time),
    )
    return LedgerCommand(
        code=code,
        data=dict(data or {}),
        meta=meta,
        network_id=network_id,
        nonce=nonce or make_nonce(),
        signers=tuple(signers),
    )


def sign_command(command: LedgerCommand, signer: Ed25519Signer) -> SignedCommand:
    """
    Encode, hash and sign. Every signer listed in the command must be the
    given key; multi-party signing is not used by the node contracts.
    """
    for spec in command.signers:
        if spec.pub_key != signer.public_key_hex:
            raise SigningError(f"no key material for signer {spec.pub_key}")
    cmd = command.encode()
    digest = hash_bytes(cmd)
    sigs = [SignatureEntry(public_key=s.pub_key, sig=signer.sign(digest)) for s in command.signers]
    return SignedCommand(cmd=cmd, hash=_b64url(digest), sigs=tuple(sigs))


def unsigned_command(command: LedgerCommand) -> SignedCommand:
    """Envelope for read-only `local` calls: hashed, empty signature list."""
    return SignedCommand.from_cmd(command.encode())
