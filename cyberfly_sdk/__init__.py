"""
Cyberfly node SDK for Python.
Convenience exports for the most common wallet and ledger APIs.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import LedgerConfig  # noqa: F401
from .errors import (  # noqa: F401
    AuthorizationDenied,
    CyberflySdkError,
    IdentityMissing,
    InvalidPhrase,
    SigningError,
    TransportError,
)

# Events
from .events import LocalEventBus  # noqa: F401

# Wallet
from .wallet.identity import (  # noqa: F401
    Identity,
    IdentityDeriver,
    account_id_for,
    is_account_id,
    peer_id_from_secret_key,
)
from .wallet.manager import MemoryStore, WalletManager  # noqa: F401
from .wallet.mnemonic import (  # noqa: F401
    generate_mnemonic,
    mnemonic_to_seed,
    validate_mnemonic,
)

# Ledger
from .ledger.client import NodeLedger, OperationResult, QueryResult  # noqa: F401
from .ledger.lifecycle import CancelToken, TransactionLifecycle  # noqa: F401
from .ledger.outcome import Outcome, TxStatus  # noqa: F401

# Node glue
from .node import AutoClaimer, NodeRegistrar  # noqa: F401

__all__ = [
    "__version__",
    "LedgerConfig",
    "CyberflySdkError",
    "InvalidPhrase",
    "IdentityMissing",
    "SigningError",
    "TransportError",
    "AuthorizationDenied",
    "LocalEventBus",
    "Identity",
    "IdentityDeriver",
    "account_id_for",
    "is_account_id",
    "peer_id_from_secret_key",
    "MemoryStore",
    "WalletManager",
    "generate_mnemonic",
    "mnemonic_to_seed",
    "validate_mnemonic",
    "NodeLedger",
    "OperationResult",
    "QueryResult",
    "CancelToken",
    "TransactionLifecycle",
    "Outcome",
    "TxStatus",
    "AutoClaimer",
    "NodeRegistrar",
]
