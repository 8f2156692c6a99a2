from __future__ import annotations

"""
HTTP client for the Chainweb Pact API (sync, httpx).

- One `httpx.Client` per instance; pass your own (e.g. with a MockTransport)
  for tests.
- Every failure to obtain a well-formed JSON response becomes
  `TransportError`; interpreting `result.status` is left to the lifecycle.
- No automatic retries: whether a failed request may be repeated depends on
  the phase (a `send` is not idempotent from the caller's point of view).

Example:
    from cyberfly_sdk.ledger.http import PactHttp
    with PactHttp("https://host/chainweb/0.0/mainnet01/chain/1/pact") as api:
        res = api.local(signed)
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from ..errors import TransportError
from ..pact.command import SignedCommand
from ..version import __version__ as SDK_VERSION

log = logging.getLogger(__name__)

JSONDict = Dict[str, Any]

_JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass
class PactHttp:
    """Thin wrapper over the `/api/v1/{local,send,poll}` endpoints."""

    base_url: str
    timeout: float = 30.0
    headers: Optional[Mapping[str, str]] = None
    client: Optional[httpx.Client] = None
    _owns_client: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        if self.client is None:
            merged: Dict[str, str] = {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": f"cyberfly-sdk-python/{SDK_VERSION}",
            }
            if self.headers:
                merged.update(dict(self.headers))
            self.client = httpx.Client(timeout=self.timeout, headers=merged)
            self._owns_client = True

    # --- context manager -------------------------------------------------

    def __enter__(self) -> "PactHttp":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def close(self) -> None:
        if self._owns_client and self.client is not None:
            self.client.close()

    # --- endpoints -------------------------------------------------------

    def local(
        self,
        signed: SignedCommand,
        *,
        preflight: bool = False,
        signature_verification: bool = False,
    ) -> JSONDict:
        """Execute without committing; returns the `result` object."""
        params = {
            "preflight": str(preflight).lower(),
            "signatureVerification": str(signature_verification).lower(),
        }
        resp = self._post("local", signed.to_json(), params=params)
        result = resp.get("result")
        if not isinstance(result, dict):
            raise TransportError("local", "response has no result object", body=_clip(resp))
        return result

    def send(self, commands: Sequence[SignedCommand]) -> List[str]:
        """Submit signed commands; returns their request keys."""
        resp = self._post("send", {"cmds": [c.to_json() for c in commands]})
        keys = resp.get("requestKeys")
        if not isinstance(keys, list) or len(keys) != len(commands) or not all(isinstance(k, str) for k in keys):
            raise TransportError("send", "response has no requestKeys", body=_clip(resp))
        return keys

    def poll(self, request_keys: Sequence[str]) -> JSONDict:
        """Map of request key → command result; pending keys are absent."""
        return self._post("poll", {"requestKeys": list(request_keys)})

    # --- internals -------------------------------------------------------

    def _post(self, endpoint: str, payload: JSONDict, *, params: Optional[Mapping[str, str]] = None) -> JSONDict:
        url = f"{self.base_url}/api/v1/{endpoint}"
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        if self.client is None:
            raise TransportError(endpoint, "client is closed")
        try:
            r = self.client.post(url, content=body.encode("utf-8"), params=params, headers=_JSON_HEADERS)
        except httpx.HTTPError as e:
            log.warning("pact %s transport error: %s", endpoint, e)
            raise TransportError(endpoint, f"network error: {e}") from e
        if not r.is_success:
            # Chainweb reports validation errors as text/plain bodies
            raise TransportError(endpoint, f"HTTP {r.status_code}", http_status=r.status_code, body=r.text[:256])
        try:
            data = r.json()
        except ValueError as e:
            raise TransportError(endpoint, "non-JSON response", http_status=r.status_code, body=r.text[:256]) from e
        if not isinstance(data, dict):
            raise TransportError(endpoint, "unexpected response type", http_status=r.status_code, body=_clip(data))
        return data


def _clip(obj: Any, limit: int = 256) -> str:
    return json.dumps(obj, default=str)[:limit]


__all__ = ["PactHttp"]
