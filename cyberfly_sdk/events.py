"""
cyberfly_sdk.events
===================

A minimal event bus for ledger-operation notifications. The ledger core
returns plain outcome values; observers (UI state, automation, metrics) learn
about progress by subscribing here instead of polling service objects.

Topics:

  - "ledger.started"   : a high-level operation began
  - "ledger.finished"  : it ended (any status)

Payloads are JSON-serializable dicts:

    {"operation": "claim_reward", "ts": 1700000000.0}
    {"operation": "claim_reward", "action": "claimed", "status": "success",
     "error": None, "requestKey": "..." , "ts": ...}

The bus is synchronous, thread-safe, and tolerant of subscriber errors.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

JSONDict = Dict[str, Any]
Subscriber = Callable[[str, JSONDict], None]

STARTED = "ledger.started"
FINISHED = "ledger.finished"


class Subscription:
    """Opaque handle returned to subscribers to allow unsubscription."""

    __slots__ = ("_bus", "_topic", "_cb")

    def __init__(self, bus: "LocalEventBus", topic: str, cb: Subscriber):
        self._bus = bus
        self._topic = topic
        self._cb = cb

    def unsubscribe(self) -> None:
        self._bus._unsubscribe(self._topic, self._cb)


class LocalEventBus:
    """
    A simple, synchronous, thread-safe pub-sub bus.

    - Per-topic subscription lists
    - Best-effort delivery: subscriber exceptions are caught and logged
    - Returns the number of subscribers invoked on publish
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subs: Dict[str, List[Subscriber]] = {}

    def subscribe(self, topic: str, callback: Subscriber) -> Subscription:
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            self._subs.setdefault(topic, []).append(callback)
        return Subscription(self, topic, callback)

    def _unsubscribe(self, topic: str, callback: Subscriber) -> None:
        with self._lock:
            lst = self._subs.get(topic)
            if not lst:
                return
            if callback in lst:
                lst.remove(callback)
            if not lst:
                self._subs.pop(topic, None)

    def subscribers(self, topic: str) -> int:
        with self._lock:
            return len(self._subs.get(topic, []))

    def publish(self, topic: str, payload: JSONDict) -> int:
        if not isinstance(payload, dict):
            raise TypeError("payload must be a dict")
        with self._lock:
            subs = list(self._subs.get(topic, []))
        delivered = 0
        for cb in subs:
            try:
                cb(topic, payload)
                delivered += 1
            except Exception as e:
                logger.warning("subscriber error on topic=%s: %s", topic, e, exc_info=True)
        return delivered


def notify_started(bus: LocalEventBus, operation: str) -> int:
    return bus.publish(STARTED, {"operation": operation, "ts": time.time()})


def notify_finished(
    bus: LocalEventBus,
    operation: str,
    *,
    status: str,
    action: Optional[str] = None,
    error: Optional[str] = None,
    request_key: Optional[str] = None,
) -> int:
    payload: JSONDict = {
        "operation": operation,
        "status": status,
        "error": error,
        "ts": time.time(),
    }
    if action is not None:
        payload["action"] = action
    if request_key is not None:
        payload["requestKey"] = request_key
    return bus.publish(FINISHED, payload)


__all__ = [
    "STARTED",
    "FINISHED",
    "Subscription",
    "LocalEventBus",
    "notify_started",
    "notify_finished",
]
