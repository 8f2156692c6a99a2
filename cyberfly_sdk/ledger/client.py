"""
cyberfly_sdk.ledger.client
==========================

High-level node-contract operations composed from the transaction lifecycle.

Reads return `QueryResult(outcome, view)`; mutations return
`OperationResult(action, outcome, view)` where `view` is re-read after a
successful mutation. Nothing here raises for ledger or network problems.

Contract calls used (module names come from `LedgerConfig`):

    (<contract>.get-node peer-id)
    (<contract>.get-node-stake peer-id)
    (<contract>.calculate-days-and-reward peer-id)
    (<contract>.calculate-apy)
    (<contract>.get-stakes-stats)
    (<contract>.new-node peer-id "active" multiaddr account (read-keyset "ks"))
    (<contract>.update-node peer-id multiaddr "active")
    (<contract>.stake account peer-id)
    (<contract>.unstake account peer-id)
    (<contract>.claim-reward account peer-id)
    (<token>.get-balance account)
    (<token>.transfer-create from to (read-keyset "ks") amount)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Generic, Mapping, Optional, Sequence, TypeVar, Union

from ..config import LedgerConfig
from ..errors import IdentityMissing
from ..events import LocalEventBus, notify_finished, notify_started
from ..pact.command import Capability
from ..pact.literals import call, read_keyset
from ..pact.numbers import as_decimal, pact_decimal, pact_int
from ..wallet.identity import Identity, is_account_id
from .http import PactHttp
from .lifecycle import CancelToken, TransactionLifecycle
from .outcome import Outcome
from .views import NodeView, RewardView, StakeStats, StakeView

log = logging.getLogger(__name__)

__all__ = ["QueryResult", "OperationResult", "NodeLedger"]

T = TypeVar("T")


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    outcome: Outcome
    view: Optional[T] = None

    @property
    def ok(self) -> bool:
        return self.outcome.ok


@dataclass(frozen=True)
class OperationResult:
    action: str
    outcome: Outcome
    view: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome.ok


class NodeLedger:
    """Node registration, staking, rewards and transfers for one identity."""

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        *,
        identity: Optional[Identity] = None,
        http: Optional[PactHttp] = None,
        lifecycle: Optional[TransactionLifecycle] = None,
        bus: Optional[LocalEventBus] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.config = config or LedgerConfig.from_env()
        self.lifecycle = lifecycle or TransactionLifecycle(self.config, identity=identity, http=http, sleep=sleep)
        self.bus = bus or LocalEventBus()

    @property
    def identity(self) -> Optional[Identity]:
        return self.lifecycle.identity

    @identity.setter
    def identity(self, value: Optional[Identity]) -> None:
        self.lifecycle.identity = value

    # --- names & capabilities ----------------------------------------------

    def _fn(self, name: str) -> str:
        return f"{self.config.contract_module}.{name}"

    def _gas_payer(self) -> Capability:
        cfg = self.config
        return Capability(f"{cfg.gas_station}.GAS_PAYER", (cfg.gas_payer_account, pact_int(1), 1.0))

    def _node_guard(self, peer_id: str) -> Capability:
        return Capability(self._fn("NODE_GUARD"), (peer_id,))

    def _account_auth(self, account: str) -> Capability:
        return Capability(self._fn("ACCOUNT_AUTH"), (account,))

    def _token_transfer(self, sender: str, receiver: str, amount: Decimal) -> Capability:
        return Capability(f"{self.config.token_module}.TRANSFER", (sender, receiver, pact_decimal(amount)))

    # --- event boundary ----------------------------------------------------

    def _observed(self, operation: str, fn: Callable[[], Union[OperationResult, QueryResult]]) -> Any:
        notify_started(self.bus, operation)
        result: Any = None
        try:
            result = fn()
        finally:
            if result is None:
                notify_finished(self.bus, operation, status="error", error="operation raised")
            else:
                outcome = result.outcome
                notify_finished(
                    self.bus,
                    operation,
                    status=outcome.status.value,
                    action=getattr(result, "action", None),
                    error=outcome.error,
                    request_key=outcome.request_key,
                )
        return result

    # --- script encoding ---------------------------------------------------

    def _local(self, function: str, *args: Any) -> Outcome:
        try:
            code = call(function, *args)
        except (ValueError, TypeError) as e:
            log.warning("cannot encode %s: %s", function, e)
            return Outcome.invalid(str(e))
        return self.lifecycle.local(code)

    def _execute(
        self,
        function: str,
        *args: Any,
        data: Optional[Mapping[str, Any]] = None,
        capabilities: Sequence[Capability] = (),
        cancel: Optional[CancelToken] = None,
    ) -> Outcome:
        try:
            code = call(function, *args)
        except (ValueError, TypeError) as e:
            log.warning("cannot encode %s: %s", function, e)
            return Outcome.invalid(str(e))
        return self.lifecycle.execute(code, data=data, capabilities=capabilities, cancel=cancel)

    # --- reads -------------------------------------------------------------

    def _query_row(self, outcome: Outcome, factory: Callable[[Mapping[str, Any]], T]) -> QueryResult[T]:
        if outcome.ok and isinstance(outcome.data, Mapping):
            return QueryResult(outcome, factory(outcome.data))
        if outcome.ok:
            return QueryResult(Outcome.failure(f"unexpected result shape: {outcome.data!r}"[:256]))
        return QueryResult(outcome)

    def get_node_info(self, peer_id: str) -> QueryResult[NodeView]:
        """`view` is None when the node is not registered (`outcome.row_not_found`)."""
        return self._query_row(self._local(self._fn("get-node"), peer_id), NodeView.from_ledger)

    def get_node_stake(self, peer_id: str) -> QueryResult[StakeView]:
        return self._query_row(self._local(self._fn("get-node-stake"), peer_id), StakeView.from_ledger)

    def calculate_rewards(self, peer_id: str) -> QueryResult[RewardView]:
        return self._query_row(self._local(self._fn("calculate-days-and-reward"), peer_id), RewardView.from_ledger)

    def get_stake_stats(self) -> QueryResult[StakeStats]:
        return self._query_row(self._local(self._fn("get-stakes-stats")), StakeStats.from_ledger)

    def get_apy(self) -> QueryResult[Decimal]:
        outcome = self._local(self._fn("calculate-apy"))
        return QueryResult(outcome, as_decimal(outcome.data) if outcome.ok else None)

    def get_balance(self, account: str) -> QueryResult[Decimal]:
        """
        Token balance. A missing account row reads as 0; an unparsable value
        leaves `view` as None.
        """
        outcome = self._local(f"{self.config.token_module}.get-balance", account)
        if outcome.ok:
            return QueryResult(outcome, as_decimal(outcome.data))
        if outcome.row_not_found:
            return QueryResult(Outcome.success(0), Decimal(0))
        return QueryResult(outcome)

    # --- registration ------------------------------------------------------

    def create_node(self, peer_id: str, multiaddr: str, *, cancel: Optional[CancelToken] = None) -> OperationResult:
        return self._observed("create_node", lambda: self._create_node(peer_id, multiaddr, cancel))

    def _create_node(self, peer_id: str, multiaddr: str, cancel: Optional[CancelToken]) -> OperationResult:
        identity = self.identity
        if identity is None:
            return OperationResult("none", Outcome.invalid(str(IdentityMissing())))
        data = {"ks": {"pred": "keys-all", "keys": [identity.public_key_hex]}}
        caps = [self._gas_payer(), Capability(self._fn("NEW_NODE"))]
        outcome = self._execute(
            self._fn("new-node"), peer_id, "active", multiaddr, identity.account_id, read_keyset("ks"),
            data=data, capabilities=caps, cancel=cancel,
        )
        return self._after(outcome, "created", lambda: self.get_node_info(peer_id).view)

    def activate_node(self, peer_id: str, multiaddr: str, *, cancel: Optional[CancelToken] = None) -> OperationResult:
        return self._observed("activate_node", lambda: self._activate_node(peer_id, multiaddr, cancel))

    def _activate_node(self, peer_id: str, multiaddr: str, cancel: Optional[CancelToken]) -> OperationResult:
        caps = [self._gas_payer(), self._node_guard(peer_id)]
        outcome = self._execute(self._fn("update-node"), peer_id, multiaddr, "active", capabilities=caps, cancel=cancel)
        return self._after(outcome, "activated", lambda: self.get_node_info(peer_id).view)

    def ensure_registered(self, peer_id: str, multiaddr: str, *, cancel: Optional[CancelToken] = None) -> OperationResult:
        """
        Idempotent: create when the node row does not exist, activate when it
        exists but is inactive, otherwise do nothing (action "active").
        """
        return self._observed("ensure_registered", lambda: self._ensure_registered(peer_id, multiaddr, cancel))

    def _ensure_registered(self, peer_id: str, multiaddr: str, cancel: Optional[CancelToken]) -> OperationResult:
        info = self.get_node_info(peer_id)
        if info.view is None:
            if not info.outcome.row_not_found:
                log.warning("node lookup failed for %s: %s", peer_id, info.outcome.error)
                return OperationResult("none", info.outcome)
            log.info("node %s not registered; creating", peer_id)
            return self.create_node(peer_id, multiaddr, cancel=cancel)
        if not info.view.is_active:
            log.info("node %s is %s; activating", peer_id, info.view.status)
            return self.activate_node(peer_id, multiaddr, cancel=cancel)
        return OperationResult("active", info.outcome, info.view)

    # --- staking -----------------------------------------------------------

    def stake(self, peer_id: str, *, cancel: Optional[CancelToken] = None) -> OperationResult:
        return self._observed("stake", lambda: self._stake(peer_id, cancel))

    def _stake(self, peer_id: str, cancel: Optional[CancelToken]) -> OperationResult:
        identity = self.identity
        if identity is None:
            return OperationResult("none", Outcome.invalid(str(IdentityMissing())))
        required = self.config.stake_amount
        balance = self.get_balance(identity.account_id)
        if not balance.ok:
            return OperationResult("none", balance.outcome)
        if balance.view is None:
            return OperationResult("none", Outcome.invalid("balance unavailable"))
        if balance.view < required:
            return OperationResult(
                "none", Outcome.invalid(f"insufficient balance: {balance.view} < {required}"), balance.view
            )
        account = identity.account_id
        caps = [
            self._gas_payer(),
            self._account_auth(account),
            self._token_transfer(account, self.config.staking_bank, required),
        ]
        outcome = self._execute(self._fn("stake"), account, peer_id, capabilities=caps, cancel=cancel)
        return self._after(outcome, "staked", lambda: self.get_node_stake(peer_id).view)

    def unstake(self, peer_id: str, *, cancel: Optional[CancelToken] = None) -> OperationResult:
        return self._observed("unstake", lambda: self._unstake(peer_id, cancel))

    def _unstake(self, peer_id: str, cancel: Optional[CancelToken]) -> OperationResult:
        identity = self.identity
        if identity is None:
            return OperationResult("none", Outcome.invalid(str(IdentityMissing())))
        account = identity.account_id
        caps = [self._gas_payer(), self._account_auth(account)]
        outcome = self._execute(self._fn("unstake"), account, peer_id, capabilities=caps, cancel=cancel)
        return self._after(outcome, "unstaked", lambda: self.get_node_stake(peer_id).view)

    # --- rewards -----------------------------------------------------------

    def claim_reward(self, peer_id: str, *, cancel: Optional[CancelToken] = None) -> OperationResult:
        return self._observed("claim_reward", lambda: self._claim_reward(peer_id, cancel))

    def _claim_reward(self, peer_id: str, cancel: Optional[CancelToken]) -> OperationResult:
        identity = self.identity
        if identity is None:
            return OperationResult("none", Outcome.invalid(str(IdentityMissing())))
        rewards = self.calculate_rewards(peer_id)
        if not rewards.ok or rewards.view is None:
            return OperationResult("none", rewards.outcome)
        reward = rewards.view.reward
        if reward is None:
            return OperationResult("none", Outcome.invalid("claimable reward unparsable"), rewards.view)
        if reward <= 0:
            log.debug("no claimable reward for %s (%s)", peer_id, reward)
            return OperationResult("skipped", Outcome.success(rewards.outcome.data), rewards.view)
        caps = [self._gas_payer(), self._node_guard(peer_id)]
        outcome = self._execute(self._fn("claim-reward"), identity.account_id, peer_id, capabilities=caps, cancel=cancel)
        return self._after(outcome, "claimed", lambda: self.calculate_rewards(peer_id).view)

    # --- transfers ---------------------------------------------------------

    def transfer(
        self,
        to_account: str,
        amount: Union[Decimal, int, str],
        *,
        cancel: Optional[CancelToken] = None,
    ) -> OperationResult:
        return self._observed("transfer", lambda: self._transfer(to_account, amount, cancel))

    def _transfer(self, to_account: str, amount: Union[Decimal, int, str], cancel: Optional[CancelToken]) -> OperationResult:
        identity = self.identity
        if identity is None:
            return OperationResult("none", Outcome.invalid(str(IdentityMissing())))
        if not is_account_id(to_account):
            return OperationResult("none", Outcome.invalid(f"invalid recipient account: {to_account!r}"))
        if to_account == identity.account_id:
            return OperationResult("none", Outcome.invalid("cannot transfer to the sending account"))
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            return OperationResult("none", Outcome.invalid(f"invalid amount: {amount!r}"))
        if not value.is_finite() or value <= 0:
            return OperationResult("none", Outcome.invalid(f"amount must be positive: {amount!r}"))
        sender = identity.account_id
        data = {"ks": {"pred": "keys-all", "keys": [to_account[2:]]}}
        caps = [self._gas_payer(), self._token_transfer(sender, to_account, value)]
        outcome = self._execute(
            f"{self.config.token_module}.transfer-create", sender, to_account, read_keyset("ks"), value,
            data=data, capabilities=caps, cancel=cancel,
        )
        return self._after(outcome, "transferred", lambda: self.get_balance(sender).view)

    # --- helpers -----------------------------------------------------------

    def _after(self, outcome: Outcome, action: str, refresh: Callable[[], Any]) -> OperationResult:
        if not outcome.ok:
            log.warning("%s did not complete: %s %s", action, outcome.status.value, outcome.error)
            return OperationResult("none", outcome)
        return OperationResult(action, outcome, refresh())
