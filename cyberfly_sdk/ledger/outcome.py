"""
Tagged results of ledger calls.

`SubmitResult` is what the submit phase yields; `Outcome` is the terminal
result of a whole operation. Callers branch on `Outcome.status`:

    INVALID               could not build/sign (bad input, no identity)
    SUBMISSION_REJECTED   network/HTTP problem, try again later
    FAILURE               the ledger executed the command and refused it
    TIMEOUT               polling exhausted; re-query before resubmitting
    CANCELLED             local polling abandoned; the tx may still land
    SUCCESS               done
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional

__all__ = ["TxStatus", "SubmitKind", "SubmitResult", "Outcome", "is_row_not_found"]

_ROW_NOT_FOUND_MARKERS = ("row not found", "no such row", "no value found")


def is_row_not_found(message: Optional[str]) -> bool:
    """Ledger error text meaning "entity does not exist yet"."""
    if not message:
        return False
    text = message.lower()
    return any(m in text for m in _ROW_NOT_FOUND_MARKERS)


class TxStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"
    SUBMISSION_REJECTED = "submission_rejected"
    CANCELLED = "cancelled"
    INVALID = "invalid"


class SubmitKind(str, enum.Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"   # the node answered, but refused the command
    FAILED = "failed"       # no usable answer (network, malformed response)


@dataclass(frozen=True)
class SubmitResult:
    kind: SubmitKind
    request_key: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def accepted(cls, request_key: str) -> "SubmitResult":
        return cls(SubmitKind.ACCEPTED, request_key=request_key)

    @classmethod
    def rejected(cls, reason: str) -> "SubmitResult":
        return cls(SubmitKind.REJECTED, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> "SubmitResult":
        return cls(SubmitKind.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.kind is SubmitKind.ACCEPTED


@dataclass(frozen=True)
class Outcome:
    status: TxStatus
    data: Any = None
    error: Optional[str] = None
    request_key: Optional[str] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.status is TxStatus.SUCCESS

    @property
    def retryable(self) -> bool:
        return self.status is TxStatus.SUBMISSION_REJECTED

    @property
    def row_not_found(self) -> bool:
        return self.status is TxStatus.FAILURE and is_row_not_found(self.error)

    # constructors -----------------------------------------------------------

    @classmethod
    def success(cls, data: Any = None, **kw: Any) -> "Outcome":
        return cls(TxStatus.SUCCESS, data=data, **kw)

    @classmethod
    def failure(cls, error: str, **kw: Any) -> "Outcome":
        return cls(TxStatus.FAILURE, error=error, **kw)

    @classmethod
    def timeout(cls, error: Optional[str] = None, **kw: Any) -> "Outcome":
        return cls(TxStatus.TIMEOUT, error=error or "transaction polling timeout", **kw)

    @classmethod
    def rejected(cls, error: str, **kw: Any) -> "Outcome":
        return cls(TxStatus.SUBMISSION_REJECTED, error=error, **kw)

    @classmethod
    def cancelled(cls, **kw: Any) -> "Outcome":
        return cls(TxStatus.CANCELLED, error="polling cancelled", **kw)

    @classmethod
    def invalid(cls, error: str, **kw: Any) -> "Outcome":
        return cls(TxStatus.INVALID, error=error, **kw)

    @classmethod
    def from_result(cls, result: Any, **kw: Any) -> "Outcome":
        """
        Classify a Pact `result` object: {"status": "success", "data": ..} or
        {"status": "failure", "error": {"message": ..}}. Any other shape is a
        failure carrying the raw payload.
        """
        if isinstance(result, dict):
            status = result.get("status")
            if status == "success":
                return cls.success(result.get("data"), **kw)
            if status == "failure":
                return cls.failure(_error_message(result.get("error")), **kw)
        return cls.failure(f"unrecognized result: {result!r}"[:256], **kw)


def _error_message(err: Any) -> str:
    if isinstance(err, dict):
        msg = err.get("message")
        if isinstance(msg, str) and msg:
            return msg
    if isinstance(err, str) and err:
        return err
    return "Transaction failed"
