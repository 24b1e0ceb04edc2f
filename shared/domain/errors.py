"""Domain error codes shared by the booking and ledger domains.

Business-rule violations are expected outcomes: they are raised as typed
errors carrying a stable code, a user-safe message and structured context
for logging. Callers map codes to user-facing responses.
"""

from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Domain error codes."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    CONFLICT = "CONFLICT"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    GUARD_VIOLATION = "GUARD_VIOLATION"
    LEDGER_FAILURE = "LEDGER_FAILURE"
    VALIDATION_FAILURE = "VALIDATION_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """Booking, apartment or user missing, or not owned by the actor."""

    code = ErrorCode.NOT_FOUND
    default_message = "Resource not found"


class InvalidStateError(DomainError):
    """Operation not valid for the booking's current status."""

    code = ErrorCode.INVALID_STATE
    default_message = "Operation is not allowed in the current state"


class ConflictError(DomainError):
    """Requested dates overlap an existing blocking booking."""

    code = ErrorCode.CONFLICT
    default_message = "Selected dates are no longer available"


class InsufficientFundsError(DomainError):
    """Payer balance is lower than the amount to move."""

    code = ErrorCode.INSUFFICIENT_FUNDS
    default_message = "Insufficient balance"


class GuardViolationError(DomainError):
    """A lifecycle guard rejected the request (time window, no changes)."""

    code = ErrorCode.GUARD_VIOLATION
    default_message = "Request is not allowed"


class LedgerFailureError(DomainError):
    """Storage or transaction error while moving money."""

    code = ErrorCode.LEDGER_FAILURE
    default_message = "Unable to process payment. Please try again."


class ValidationFailureError(DomainError):
    """Malformed input."""

    code = ErrorCode.VALIDATION_FAILURE
    default_message = "Invalid input"


class InternalError(DomainError):
    """Unexpected failure in an operation that does not move money."""

    code = ErrorCode.INTERNAL_ERROR
    default_message = "Unable to process request. Please try again."
