"""Error taxonomy and the per-sub-operation ``Result`` wrapper.

Three kinds of failure exist in an analysis:

* input-validation errors, raised as :class:`AnalysisValidationError`
  before any external call is made;
* external-service errors (:class:`ExternalServiceError`), which never
  leave a component boundary and are instead reported through a
  :class:`Result`;
* partial-data anomalies (a record with no title or date), which are
  logged and excluded for that record only.
"""

from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

import openai
import requests

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Classification of a degraded sub-operation."""

    TIMEOUT = "timeout"
    UPSTREAM = "upstream"
    MALFORMED_RESPONSE = "malformed_response"
    MISSING_DATA = "missing_data"


class AnalysisValidationError(ValueError):
    """Raised when analysis parameters fail their preconditions."""


class ExternalServiceError(RuntimeError):
    """Raised by clients and adapters when an external call fails."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UPSTREAM) -> None:
        super().__init__(message)
        self.kind = kind


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map an exception raised by an external call onto an :class:`ErrorKind`."""
    if isinstance(exc, ExternalServiceError):
        return exc.kind
    if isinstance(
        exc,
        (
            TimeoutError,
            concurrent.futures.TimeoutError,
            requests.Timeout,
            openai.APITimeoutError,
        ),
    ):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return ErrorKind.MALFORMED_RESPONSE
    return ErrorKind.UPSTREAM


@dataclass(slots=True, frozen=True)
class Result(Generic[T]):
    """Outcome of one sub-operation.

    A result is either clean (``error is None``) or degraded.  A degraded
    result still carries a usable fallback ``value`` so the caller can
    keep going; ``error`` and ``error_kind`` explain what was lost.
    """

    value: Optional[T] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        error: str,
        kind: ErrorKind = ErrorKind.UPSTREAM,
        fallback: Optional[T] = None,
    ) -> "Result[T]":
        return cls(value=fallback, error=error, error_kind=kind)

    @classmethod
    def capture(cls, fn: Callable[[], T], *, fallback: Optional[T] = None) -> "Result[T]":
        """Run *fn* and wrap its return value, or its exception, in a result."""
        try:
            return cls.success(fn())
        except Exception as exc:  # noqa: BLE001 – classified and reported to the caller
            return cls.failure(str(exc) or type(exc).__name__, classify_exception(exc), fallback)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.value is not None else default

    def describe(self, operation: str) -> str:
        """Return a one-line description of the degradation for reporting."""
        kind = self.error_kind.value if self.error_kind else "unknown"
        return f"{operation}: {kind} ({self.error})"


__all__ = [
    "ErrorKind",
    "AnalysisValidationError",
    "ExternalServiceError",
    "classify_exception",
    "Result",
]
