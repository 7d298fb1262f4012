"""Error hierarchy and code mapping for the fund ledger."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INSUFFICIENT_UNITS = "INSUFFICIENT_UNITS"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"


HTTP_STATUS_BY_ERROR: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INSUFFICIENT_UNITS: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.DEPENDENCY_UNAVAILABLE: 503,
}


class FundError(Exception):
    """Base typed exception surfaced unmodified to the caller."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        # Offending values are stringified so Decimals render exactly
        self.details = {k: _render(v) for k, v in (details or {}).items()}

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_ERROR.get(self.code, 400)

    def to_error_payload(self) -> dict[str, Any]:
        return {
            "detail": self.message,
            "code": self.code.value,
            "details": self.details,
        }


class ValidationError(FundError):
    """Non-positive amount, units or price, or a missing/invalid field."""

    code = ErrorCode.VALIDATION_ERROR


class InsufficientUnits(FundError):
    """A withdrawal or sell exceeds the available balance."""

    code = ErrorCode.INSUFFICIENT_UNITS

    def __init__(self, message: str, *, requested: Any, available: Any, **extra: Any) -> None:
        super().__init__(message, details={"requested": requested, "available": available, **extra})
        self.requested = requested
        self.available = available


class NotFound(FundError):
    """Unknown account, position, NAV record or transaction."""

    code = ErrorCode.NOT_FOUND


class ConflictError(FundError):
    """Concurrent update detected; the caller should retry."""

    code = ErrorCode.CONFLICT


class DependencyUnavailable(FundError):
    """A conversion needs a NAV but the ledger is empty."""

    code = ErrorCode.DEPENDENCY_UNAVAILABLE


def _render(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    return str(value)
