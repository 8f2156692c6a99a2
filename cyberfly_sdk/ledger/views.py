"""
Read-only projections of node-contract query results.

Views are rebuilt from every `local` response and never updated in place.
Numeric fields go through :mod:`cyberfly_sdk.pact.numbers`, so a value the
ledger encodes in an unexpected shape surfaces as ``None`` rather than 0.
Row keys are accepted in both the contract's snake_case and camelCase.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..pact.numbers import as_decimal, as_int

__all__ = ["NodeView", "StakeView", "RewardView", "StakeStats", "parse_time"]

_MISSING = object()


def _pick(row: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        v = row.get(k, _MISSING)
        if v is not _MISSING:
            return v
    return default


def parse_time(raw: Any) -> Optional[datetime]:
    """Pact time: {"time": ISO} / {"timep": ISO} / bare ISO string."""
    if isinstance(raw, Mapping):
        raw = raw.get("time", raw.get("timep"))
    if not isinstance(raw, str) or not raw:
        return None
    text = raw.strip().replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class NodeView:
    peer_id: Optional[str]
    status: str
    multiaddr: str
    account: str
    register_date: Optional[datetime] = None
    last_active_date: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @classmethod
    def from_ledger(cls, row: Mapping[str, Any]) -> "NodeView":
        return cls(
            peer_id=_pick(row, "peer_id", "peerId"),
            status=str(_pick(row, "status", default="unknown")),
            multiaddr=str(_pick(row, "multiaddr", default="")),
            account=str(_pick(row, "account", default="")),
            register_date=parse_time(_pick(row, "registered_at", "registerDate")),
            last_active_date=parse_time(_pick(row, "last_active", "lastActiveDate")),
        )


@dataclass(frozen=True)
class StakeView:
    account: str
    active: bool
    amount: Optional[Decimal]
    stake_time: Optional[datetime] = None
    last_claim: Optional[datetime] = None

    @classmethod
    def from_ledger(cls, row: Mapping[str, Any]) -> "StakeView":
        return cls(
            account=str(_pick(row, "account", default="")),
            active=_pick(row, "active", default=False) is True,
            amount=as_decimal(_pick(row, "amount")),
            stake_time=parse_time(_pick(row, "stake_time", "stakeTime")),
            last_claim=parse_time(_pick(row, "last_claim", "lastClaim")),
        )


@dataclass(frozen=True)
class RewardView:
    days: Optional[Decimal]
    reward: Optional[Decimal]

    @property
    def has_claimable(self) -> bool:
        return self.reward is not None and self.reward > 0

    @classmethod
    def from_ledger(cls, row: Mapping[str, Any]) -> "RewardView":
        return cls(days=as_decimal(row.get("days")), reward=as_decimal(row.get("reward")))


@dataclass(frozen=True)
class StakeStats:
    total_stakes: Optional[int]
    total_staked_amount: Optional[Decimal]

    @classmethod
    def from_ledger(cls, row: Mapping[str, Any]) -> "StakeStats":
        return cls(
            total_stakes=as_int(_pick(row, "total_stakes", "totalStakes")),
            total_staked_amount=as_decimal(_pick(row, "total_staked_amount", "totalStakedAmount")),
        )
