"""
cyberfly_sdk.ledger
===================

Ledger access for the node contract:

- PactHttp: thin HTTP client for the Pact `local`/`send`/`poll` endpoints.
- TransactionLifecycle: build → sign → submit → poll with cancellation.
- NodeLedger: registration, staking, reward and transfer operations.
"""

from .client import NodeLedger, OperationResult, QueryResult
from .http import PactHttp
from .lifecycle import CancelToken, TransactionLifecycle, identity_lock
from .outcome import Outcome, SubmitKind, SubmitResult, TxStatus, is_row_not_found
from .views import NodeView, RewardView, StakeStats, StakeView, parse_time

__all__ = [
    "PactHttp",
    "CancelToken",
    "TransactionLifecycle",
    "identity_lock",
    "Outcome",
    "SubmitKind",
    "SubmitResult",
    "TxStatus",
    "is_row_not_found",
    "NodeView",
    "RewardView",
    "StakeStats",
    "StakeView",
    "parse_time",
    "NodeLedger",
    "OperationResult",
    "QueryResult",
]
