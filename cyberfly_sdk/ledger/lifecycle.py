"""
cyberfly_sdk.ledger.lifecycle
=============================

Build → sign → submit → poll state machine for Pact commands.

    Building ─► Signing ─► Submitting ─► Polling ─► SUCCESS | FAILURE | TIMEOUT
                                 │
                                 └────► SUBMISSION_REJECTED

Read-only calls (`local`) stop after Submitting and return synchronously.

Polling waits a fixed interval (2 s by default) *before* each poll, for at
most `max_poll_attempts` polls (30 by default, so about a minute). The
interval is constant; there is no backoff. A transport error on one poll is
treated as transient: polling continues and the error is attached to the final
TIMEOUT if nothing resolves.

Mutations against one identity are serialized with a process-wide lock keyed by
public key, since concurrent submissions share the same sender/nonce space.
Reads take no lock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from ..config import LedgerConfig
from ..errors import IdentityMissing, SigningError, TransportError
from ..pact.command import (Capability, LedgerCommand, SignedCommand,
                            SignerSpec, build_command, sign_command,
                            unsigned_command)
from ..wallet.identity import Identity
from ..wallet.signer import Ed25519Signer
from .http import PactHttp
from .outcome import Outcome, SubmitResult

log = logging.getLogger(__name__)

__all__ = ["CancelToken", "TransactionLifecycle", "identity_lock"]

_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def identity_lock(public_key_hex: str) -> threading.Lock:
    """The mutation lock shared by every lifecycle using this identity."""
    with _LOCKS_GUARD:
        lock = _LOCKS.get(public_key_hex)
        if lock is None:
            lock = _LOCKS[public_key_hex] = threading.Lock()
        return lock


class CancelToken:
    """
    Lets a caller abandon a pending poll loop. Cancelling only stops local
    polling; a submitted transaction cannot be retracted.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


class TransactionLifecycle:
    def __init__(
        self,
        config: LedgerConfig,
        *,
        identity: Optional[Identity] = None,
        http: Optional[PactHttp] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.config = config
        self.identity = identity
        self.http = http or PactHttp(config.pact_api_url, timeout=config.request_timeout, headers=config.http_headers())
        self._sleep = sleep

    # --- Building ----------------------------------------------------------

    def build(
        self,
        code: str,
        *,
        data: Optional[Mapping[str, Any]] = None,
        capabilities: Sequence[Capability] = (),
        sender: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> LedgerCommand:
        """Signed (mutating) command; paid by the gas station unless `sender` is given."""
        if self.identity is None:
            raise IdentityMissing()
        cfg = self.config
        return build_command(
            code,
            network_id=cfg.network_id,
            chain_id=cfg.chain_id,
            sender=cfg.gas_payer_account if sender is None else sender,
            gas_limit=cfg.gas_limit if gas_limit is None else gas_limit,
            gas_price=cfg.gas_price,
            ttl=cfg.ttl,
            data=data,
            signers=[SignerSpec(self.identity.public_key_hex, tuple(capabilities))],
        )

    def build_local(self, code: str, *, data: Optional[Mapping[str, Any]] = None) -> LedgerCommand:
        """Read-only command: no sender, no signers."""
        cfg = self.config
        return build_command(
            code,
            network_id=cfg.network_id,
            chain_id=cfg.chain_id,
            sender="",
            gas_limit=cfg.local_gas_limit,
            gas_price=cfg.gas_price,
            ttl=cfg.ttl,
            data=data,
        )

    # --- Signing -----------------------------------------------------------

    def sign(self, command: LedgerCommand) -> SignedCommand:
        if self.identity is None:
            raise SigningError("no key material available")
        signer = Ed25519Signer(self.identity.secret_key_hex)
        if signer.public_key_hex != self.identity.public_key_hex:
            raise SigningError("secret key does not match identity public key")
        signed = sign_command(command, signer)
        log.debug("signed command hash=%s signers=%d", signed.hash, len(signed.sigs))
        return signed

    # --- Submitting --------------------------------------------------------

    def local(self, code: str, *, data: Optional[Mapping[str, Any]] = None) -> Outcome:
        """Run a read-only query; terminal immediately."""
        try:
            signed = unsigned_command(self.build_local(code, data=data))
        except (ValueError, TypeError) as e:
            return Outcome.invalid(str(e))
        log.debug("local %s", code)
        try:
            result = self.http.local(signed)
        except TransportError as e:
            return Outcome.rejected(str(e))
        return Outcome.from_result(result)

    def submit(self, signed: SignedCommand) -> SubmitResult:
        try:
            keys = self.http.send([signed])
        except TransportError as e:
            if e.http_status is not None and 400 <= e.http_status < 500:
                log.warning("send rejected: %s", e)
                return SubmitResult.rejected(str(e))
            log.warning("send failed: %s", e)
            return SubmitResult.failed(str(e))
        request_key = keys[0]
        if request_key != signed.hash:
            log.warning("request key %s differs from command hash %s", request_key, signed.hash)
        log.info("submitted request_key=%s", request_key)
        return SubmitResult.accepted(request_key)

    # --- Polling -----------------------------------------------------------

    def poll(self, request_key: str, *, cancel: Optional[CancelToken] = None) -> Outcome:
        last_error: Optional[str] = None
        attempts = self.config.max_poll_attempts
        for attempt in range(1, attempts + 1):
            if self._wait(self.config.poll_interval, cancel):
                log.info("polling cancelled request_key=%s after %d attempts", request_key, attempt - 1)
                return Outcome.cancelled(request_key=request_key, attempts=attempt - 1)
            try:
                resp = self.http.poll([request_key])
            except TransportError as e:
                last_error = str(e)
                log.warning("poll attempt %d/%d failed: %s", attempt, attempts, e)
                continue
            entry = resp.get(request_key)
            result = entry.get("result") if isinstance(entry, dict) else None
            if isinstance(result, dict) and result.get("status") in ("success", "failure"):
                outcome = Outcome.from_result(result, request_key=request_key, attempts=attempt)
                log.info("request_key=%s resolved %s after %d polls", request_key, outcome.status.value, attempt)
                return outcome
            log.debug("request_key=%s pending (%d/%d)", request_key, attempt, attempts)
        error = "transaction polling timeout"
        if last_error:
            error += f" (last error: {last_error})"
        return Outcome.timeout(error, request_key=request_key, attempts=attempts)

    def _wait(self, seconds: float, cancel: Optional[CancelToken]) -> bool:
        if cancel is not None:
            if cancel.cancelled:
                return True
            if self._sleep is None:
                return cancel.wait(seconds)
        (self._sleep or time.sleep)(seconds)
        return cancel is not None and cancel.cancelled

    # --- Whole run ---------------------------------------------------------

    def execute(
        self,
        code: str,
        *,
        data: Optional[Mapping[str, Any]] = None,
        capabilities: Sequence[Capability] = (),
        cancel: Optional[CancelToken] = None,
    ) -> Outcome:
        """Build, sign, submit and poll one mutation; never raises for ledger errors."""
        if self.identity is None:
            return Outcome.invalid(str(IdentityMissing()))
        with identity_lock(self.identity.public_key_hex):
            try:
                signed = self.sign(self.build(code, data=data, capabilities=capabilities))
            except (IdentityMissing, SigningError, ValueError, TypeError) as e:
                log.error("cannot build/sign command: %s", e)
                return Outcome.invalid(str(e))
            submitted = self.submit(signed)
            if not submitted.ok:
                return Outcome.rejected(submitted.reason or "submission failed")
            if submitted.request_key is None:
                return Outcome.rejected("submission returned no request key")
            return self.poll(submitted.request_key, cancel=cancel)
