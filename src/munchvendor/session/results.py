# Result: explicit outcome values for best-effort network calls.
# Created: 2026-10-16

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why a best-effort call did not produce a value."""

    NO_CREDENTIAL = "no_credential"  # nothing to send (e.g. no refresh cookie)
    HTTP_STATUS = "http_status"  # server answered with a non-2xx status
    NETWORK = "network"  # transport failure, no response at all
    MALFORMED = "malformed"  # 2xx but the body was not what we expected


@dataclass(frozen=True)
class Result(Generic[T]):
    """Value-or-error carrier.

    Callers that discard failures outwardly (refresh, revoke) still keep the
    ``Result`` around so tests can assert on what was attempted.
    """

    value: T | None = None
    error: ErrorKind | None = None
    detail: str = ""
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None, status_code: int | None = None) -> Result[T]:
        return cls(value=value, status_code=status_code)

    @classmethod
    def failure(
        cls,
        error: ErrorKind,
        detail: str = "",
        status_code: int | None = None,
    ) -> Result[T]:
        return cls(error=error, detail=detail, status_code=status_code)
