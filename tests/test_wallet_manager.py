import json

import pytest

from cyberfly_sdk.errors import AuthorizationDenied, InvalidPhrase
from cyberfly_sdk.wallet.identity import IdentityDeriver
from cyberfly_sdk.wallet.manager import WALLET_KEY, MemoryStore, WalletManager

PHRASE = " ".join(["abandon"] * 11 + ["about"])


class Gate:
    def __init__(self, allow: bool) -> None:
        self.allow = allow
        self.reasons = []

    def authorize(self, reason: str) -> bool:
        self.reasons.append(reason)
        return self.allow


def test_create_persists_and_reloads():
    store = MemoryStore()
    wm = WalletManager(store)
    assert not wm.initialize()
    ident = wm.create()
    assert wm.has_wallet
    record = json.loads(store.read(WALLET_KEY))
    assert record["publicKey"] == ident.public_key_hex
    assert len(record["mnemonic"].split()) == 12

    again = WalletManager(store)
    assert again.initialize()
    assert again.identity == ident


def test_restore_normalizes_and_derives():
    wm = WalletManager(MemoryStore())
    ident = wm.restore("  " + PHRASE.upper() + " ")
    assert ident == IdentityDeriver().derive(PHRASE)
    assert wm.reveal_mnemonic() == PHRASE


def test_restore_rejects_invalid_phrase():
    wm = WalletManager(MemoryStore())
    with pytest.raises(InvalidPhrase):
        wm.restore(" ".join(["abandon"] * 12))
    assert not wm.has_wallet


def test_sensitive_operations_are_gated():
    gate = Gate(allow=False)
    store = MemoryStore()
    wm = WalletManager(store, authorizer=gate)
    wm.restore(PHRASE)
    with pytest.raises(AuthorizationDenied):
        wm.reveal_mnemonic("Show recovery phrase")
    with pytest.raises(AuthorizationDenied):
        wm.delete()
    assert store.read(WALLET_KEY) is not None
    assert gate.reasons == ["Show recovery phrase", "Delete wallet"]

    gate.allow = True
    assert wm.reveal_mnemonic() == PHRASE
    wm.delete()
    assert store.read(WALLET_KEY) is None
    assert wm.identity is None


def test_preview_public_key_does_not_store():
    store = MemoryStore()
    wm = WalletManager(store)
    assert wm.preview_public_key(PHRASE) == IdentityDeriver().derive(PHRASE).public_key_hex
    assert wm.preview_public_key("not a phrase") is None
    assert store.read(WALLET_KEY) is None
