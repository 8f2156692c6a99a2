"""
SDK configuration: Chainweb endpoint, network/chain ids, contract names, gas
settings and polling limits.

- Loads defaults matching the Cyberfly mainnet deployment and supports
  overrides via environment variables (CYBERFLY_*).
- Provides helpers for building HTTP headers and the Pact API base URL.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from .version import __version__

_DEFAULT_API_HOST = "https://chainweb.ecko.finance/chainweb/0.0"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None and v != "" else default


def _ensure_scheme(url: str, allowed: tuple[str, ...] = ("http", "https")) -> str:
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url.rstrip("/")


@dataclass(slots=True)
class LedgerConfig:
    # Chain addressing
    network_id: str = "mainnet01"
    chain_id: str = "1"
    api_host: str = _DEFAULT_API_HOST
    # Contracts
    contract_module: str = "free.cyberfly_node"
    token_module: str = "free.cyberfly"
    gas_station: str = "free.cyberfly-account-gas-station"
    gas_payer_account: str = "cyberfly-account-gas"
    staking_bank: str = "cyberfly-staking-bank"
    stake_amount: Decimal = field(default_factory=lambda: Decimal("50000"))
    # Gas
    gas_limit: int = 2000
    local_gas_limit: int = 1000
    gas_price: Decimal = field(default_factory=lambda: Decimal("0.0000001"))
    ttl: int = 600
    # Transport / polling
    request_timeout: float = 30.0
    poll_interval: float = 2.0
    max_poll_attempts: int = 30
    user_agent: str = field(default_factory=lambda: f"cyberfly-sdk-py/{__version__}")

    def __post_init__(self) -> None:
        self.api_host = _ensure_scheme(self.api_host)
        self.stake_amount = Decimal(str(self.stake_amount))
        self.gas_price = Decimal(str(self.gas_price))
        if self.poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        if self.max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be >= 1")

    @property
    def pact_api_url(self) -> str:
        return f"{self.api_host}/{self.network_id}/chain/{self.chain_id}/pact"

    @classmethod
    def from_env(cls, prefix: str = "CYBERFLY_") -> "LedgerConfig":
        """
        Create config from environment variables:

        CYBERFLY_NETWORK_ID       (str)
        CYBERFLY_CHAIN_ID         (str)
        CYBERFLY_API_HOST         (http/https)
        CYBERFLY_CONTRACT         (module name, e.g. free.cyberfly_node)
        CYBERFLY_TOKEN            (token module, e.g. free.cyberfly)
        CYBERFLY_GAS_STATION      (gas station module)
        CYBERFLY_TIMEOUT          (float seconds, HTTP)
        CYBERFLY_POLL_INTERVAL    (float seconds)
        CYBERFLY_POLL_ATTEMPTS    (int)
        """
        base = cls()
        return cls(
            network_id=_env(f"{prefix}NETWORK_ID", base.network_id) or base.network_id,
            chain_id=_env(f"{prefix}CHAIN_ID", base.chain_id) or base.chain_id,
            api_host=_env(f"{prefix}API_HOST", base.api_host) or base.api_host,
            contract_module=_env(f"{prefix}CONTRACT", base.contract_module) or base.contract_module,
            token_module=_env(f"{prefix}TOKEN", base.token_module) or base.token_module,
            gas_station=_env(f"{prefix}GAS_STATION", base.gas_station) or base.gas_station,
            request_timeout=float(_env(f"{prefix}TIMEOUT", str(base.request_timeout))),
            poll_interval=float(_env(f"{prefix}POLL_INTERVAL", str(base.poll_interval))),
            max_poll_attempts=int(_env(f"{prefix}POLL_ATTEMPTS", str(base.max_poll_attempts))),
        )

    @classmethod
    def with_overrides(
        cls, base: Optional["LedgerConfig"] = None, **overrides: Any
    ) -> "LedgerConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys are ignored.
        """
        data = (base or cls.from_env()).to_dict()
        data.update({k: v for k, v in overrides.items() if k in data})
        return cls(**data)

    def http_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["LedgerConfig"]
