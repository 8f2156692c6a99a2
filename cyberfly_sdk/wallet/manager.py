"""
Wallet lifecycle on top of the platform's secure key/value store.

The store itself (encryption at rest, keychain/keystore access) belongs to
the host platform; this module only needs the scoped ``read/write/delete``
surface described by :class:`SecureStore`. Sensitive reads go through an
:class:`Authorizer` (biometric/PIN gate on devices).
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Dict, Optional, Protocol

from ..errors import AuthorizationDenied, InvalidPhrase
from .identity import Identity, IdentityDeriver
from .mnemonic import normalize_phrase

log = logging.getLogger(__name__)

WALLET_KEY = "cyberfly_wallet"


class SecureStore(Protocol):
    def read(self, key: str) -> Optional[str]: ...
    def write(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class Authorizer(Protocol):
    def authorize(self, reason: str) -> bool: ...


class MemoryStore:
    """Process-local SecureStore, for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class WalletManager:
    """
    Create, restore, load and delete the node wallet.

    The stored record holds the phrase and the derived keys so the node can
    start without re-deriving; the identity is replaced only by delete +
    create/restore.
    """

    def __init__(
        self,
        store: SecureStore,
        *,
        authorizer: Optional[Authorizer] = None,
        deriver: Optional[IdentityDeriver] = None,
    ) -> None:
        self._store = store
        self._authorizer = authorizer
        self._deriver = deriver or IdentityDeriver()
        self._identity: Optional[Identity] = None
        self._mnemonic: Optional[str] = None

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def has_wallet(self) -> bool:
        return self._identity is not None

    def initialize(self) -> bool:
        """Load a previously stored wallet. Returns True if one exists."""
        raw = self._store.read(WALLET_KEY)
        if raw is None:
            return False
        record = json.loads(raw)
        self._identity = Identity.from_json(record)
        self._mnemonic = record.get("mnemonic")
        log.info("wallet loaded account=%s", self._identity.account_id)
        return True

    def create(self) -> Identity:
        return self._save(self._deriver.generate(), is_new=True)

    def restore(self, phrase: str) -> Identity:
        if not self._deriver.validate(phrase):
            raise InvalidPhrase()
        return self._save(normalize_phrase(phrase), is_new=False)

    def delete(self, reason: str = "Delete wallet") -> None:
        self._require(reason)
        self._store.delete(WALLET_KEY)
        self._identity = None
        self._mnemonic = None
        log.info("wallet deleted")

    def reveal_mnemonic(self, reason: str = "Show recovery phrase") -> Optional[str]:
        self._require(reason)
        return self._mnemonic

    def preview_public_key(self, phrase: str) -> Optional[str]:
        """Public key a phrase would restore to, without touching the store."""
        if not self._deriver.validate(phrase):
            return None
        return self._deriver.derive(phrase).public_key_hex

    def _save(self, phrase: str, *, is_new: bool) -> Identity:
        identity = self._deriver.derive(phrase)
        record = dict(identity.to_json(), mnemonic=phrase)
        self._store.write(WALLET_KEY, json.dumps(record))
        self._identity = identity
        self._mnemonic = phrase
        log.info("wallet %s account=%s", "created" if is_new else "restored", identity.account_id)
        return identity

    def _require(self, reason: str) -> None:
        if self._authorizer is not None and not self._authorizer.authorize(reason):
            raise AuthorizationDenied(reason)


__all__ = ["WALLET_KEY", "SecureStore", "Authorizer", "MemoryStore", "WalletManager"]
