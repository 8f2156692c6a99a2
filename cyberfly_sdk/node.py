"""
cyberfly_sdk.node
=================

Glue between the local P2P node and the ledger:

- :class:`NodeControl` is the surface of the networking/storage node (owned by
  the host application; only its interface is described here).
- :class:`NodeRegistrar` makes sure the running node is registered and active
  on the ledger, using the wallet public key as the peer id.
- :class:`AutoClaimer` periodically claims staking rewards on a single
  background thread.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

import httpx

from .ledger.client import NodeLedger, OperationResult
from .ledger.outcome import Outcome
from .wallet.identity import Identity

log = logging.getLogger(__name__)

NODE_PORT = 31001
PUBLIC_IP_URL = "http://ip-api.com/json/"
DEFAULT_CLAIM_INTERVAL = 60.0

__all__ = [
    "NODE_PORT",
    "PUBLIC_IP_URL",
    "DEFAULT_CLAIM_INTERVAL",
    "NodeControl",
    "fetch_public_ip",
    "node_multiaddr",
    "NodeRegistrar",
    "AutoClaimer",
]


class NodeControl(Protocol):
    def start(self, config: Mapping[str, Any]) -> None: ...
    def stop(self) -> None: ...
    def status(self) -> Dict[str, Any]: ...
    def send_gossip(self, topic: str, payload: Any) -> None: ...


def fetch_public_ip(
    *, client: Optional[httpx.Client] = None, url: str = PUBLIC_IP_URL, timeout: float = 10.0
) -> Optional[str]:
    """Public address as reported by ip-api.com (`query` field), or None."""
    owns = client is None
    c = client or httpx.Client(timeout=timeout)
    try:
        resp = c.get(url)
        if resp.status_code != 200:
            log.warning("public IP lookup returned HTTP %s", resp.status_code)
            return None
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        log.warning("public IP lookup failed: %s", e)
        return None
    finally:
        if owns:
            c.close()
    ip = data.get("query") if isinstance(data, dict) else None
    return ip if isinstance(ip, str) and ip else None


def node_multiaddr(public_key_hex: str, public_ip: Optional[str], port: int = NODE_PORT) -> str:
    """`<pubkey>@<ip>:<port>` when the address is known, else `/p2p/<pubkey>`."""
    if public_ip:
        return f"{public_key_hex}@{public_ip}:{port}"
    return f"/p2p/{public_key_hex}"


class NodeRegistrar:
    def __init__(
        self,
        ledger: NodeLedger,
        identity: Identity,
        *,
        ip_lookup: Optional[Callable[[], Optional[str]]] = None,
        port: int = NODE_PORT,
    ) -> None:
        self.ledger = ledger
        self.identity = identity
        self.port = port
        self._ip_lookup = ip_lookup or fetch_public_ip

    @property
    def peer_id(self) -> str:
        return self.identity.public_key_hex

    def multiaddr(self) -> str:
        return node_multiaddr(self.peer_id, self._ip_lookup(), self.port)

    def register(self) -> OperationResult:
        """Create or re-activate this node's ledger entry; no-op when active."""
        if self.ledger.identity is None:
            self.ledger.identity = self.identity
        addr = self.multiaddr()
        result = self.ledger.ensure_registered(self.peer_id, addr)
        log.info("node %s registration: %s (%s)", self.peer_id, result.action, result.outcome.status.value)
        return result

    def start_node(self, node: NodeControl, config: Optional[Mapping[str, Any]] = None) -> OperationResult:
        """Start the P2P node, then register it."""
        node.start(dict(config or {}, secretKey=self.identity.secret_key_hex))
        return self.register()


class AutoClaimer:
    """
    Calls `claim_reward(peer_id)` every `interval` seconds until stopped.

    The first claim runs one interval after `start()`. Results are delivered to
    `on_result` (if given) from the claimer thread.
    """

    def __init__(
        self,
        ledger: NodeLedger,
        peer_id: str,
        *,
        interval: float = DEFAULT_CLAIM_INTERVAL,
        on_result: Optional[Callable[[OperationResult], None]] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.ledger = ledger
        self.peer_id = peer_id
        self.interval = float(interval)
        self._on_result = on_result
        self._stop_evt = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_evt.clear()
        self._thread = threading.Thread(target=self._run, name="cyberfly-auto-claim", daemon=True)
        self._thread.start()
        log.info("auto-claim started for %s every %.0fs", self.peer_id, self.interval)

    def stop(self, join: bool = True, timeout: Optional[float] = 5.0) -> None:
        self._stop_evt.set()
        if self._thread and join:
            self._thread.join(timeout=timeout)
        self._thread = None

    def claim_once(self) -> OperationResult:
        try:
            result = self.ledger.claim_reward(self.peer_id)
        except Exception as e:
            log.error("auto-claim failed: %s", e, exc_info=True)
            result = OperationResult("none", Outcome.invalid(repr(e)))
        if result.action == "claimed":
            log.info("auto-claim claimed reward for %s", self.peer_id)
        if self._on_result is not None:
            try:
                self._on_result(result)
            except Exception as e:
                log.error("auto-claim result callback failed: %s", e, exc_info=True)
        return result

    def _run(self) -> None:
        while not self._stop_evt.wait(self.interval):
            self.claim_once()
        log.info("auto-claim stopped for %s", self.peer_id)
