"""
Typed error classes for the Python SDK.

Derivation and building/signing problems are raised synchronously so callers
can catch specific failure modes while still being able to catch the base
`CyberflySdkError`. Ledger and network problems are *not* raised out of the
transaction lifecycle; they are reported through
:class:`cyberfly_sdk.ledger.outcome.Outcome` instead. `TransportError` is the
internal carrier used between the HTTP layer and the lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

__all__ = [
    "CyberflySdkError",
    "InvalidPhrase",
    "IdentityMissing",
    "SigningError",
    "TransportError",
    "AuthorizationDenied",
]


class CyberflySdkError(Exception):
    """Base class for all SDK errors."""


class InvalidPhrase(CyberflySdkError, ValueError):
    """Recovery phrase failed the word-count or checksum rules."""

    def __init__(self, message: str = "invalid recovery phrase") -> None:
        super().__init__(message)


class IdentityMissing(CyberflySdkError):
    """An operation that needs signing material ran without an identity."""

    def __init__(self, message: str = "wallet not initialized") -> None:
        super().__init__(message)


class SigningError(CyberflySdkError):
    """Key material is absent or malformed."""


@dataclass(slots=True)
class TransportError(CyberflySdkError):
    """
    Raised by the HTTP layer when a request could not be completed.

    Fields:
      - endpoint: "local" | "send" | "poll"
      - message: human-readable description
      - http_status: HTTP status code if a response was received
      - body: truncated response body for context
    """

    endpoint: str
    message: str
    http_status: Optional[int] = None
    body: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"{self.endpoint}: {self.message}"]
        if self.http_status is not None:
            parts.append(f"http={self.http_status}")
        if self.body:
            parts.append(f"body={self.body!r}")
        return " ".join(parts)


class AuthorizationDenied(CyberflySdkError):
    """The local authorization gate refused a sensitive operation."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"authorization denied: {reason}")
        self.reason = reason
