"""
cyberfly_sdk.wallet
===================

Convenience exports for wallet helpers:

- Mnemonic utilities (generate/validate, seed derivation).
- SLIP-0010 Ed25519 derivation and the fixed-path IdentityDeriver.
- Ed25519 signer.
- WalletManager over a platform secure store.
"""

from .identity import (ACCOUNT_PREFIX, DERIVATION_PATH, Identity,
                       IdentityDeriver, account_id_for, is_account_id,
                       peer_id_from_secret_key)
from .manager import Authorizer, MemoryStore, SecureStore, WalletManager
from .mnemonic import generate_mnemonic, mnemonic_to_seed, validate_mnemonic
from .signer import Ed25519Signer, verify_signature

__all__ = [
    # mnemonic
    "generate_mnemonic",
    "mnemonic_to_seed",
    "validate_mnemonic",
    # identity
    "DERIVATION_PATH",
    "ACCOUNT_PREFIX",
    "Identity",
    "IdentityDeriver",
    "account_id_for",
    "is_account_id",
    "peer_id_from_secret_key",
    # signer
    "Ed25519Signer",
    "verify_signature",
    # storage
    "SecureStore",
    "Authorizer",
    "MemoryStore",
    "WalletManager",
]
