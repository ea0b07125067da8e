"""
Errors — typed failure taxonomy for the billing engine.

Every failure is a BillingError carrying:
- kind: ErrorKind (maps to an HTTP-equivalent status and retry behaviour)
- code: stable machine-readable identifier
- message: human-readable text
- context: which field or invariant failed

Core functions return Result[T, BillingError]; exceptions are raised only
inside graph nodes and converted back at the graph boundary.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import ClassVar


# ═══════════════════════════════════════════════════════════════════════════════
# Error Kind
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorKind(Enum):
    """Kinds of billing errors."""

    VALIDATION = auto()  # Malformed or missing input
    PAYMENT = auto()  # Negative or unusable tender
    TRANSITION = auto()  # Illegal order status change
    ACCESS = auto()  # Actor may not touch this order
    NOT_FOUND = auto()  # No such order
    COLLISION = auto()  # Generated identifier already taken
    CONFLICT = auto()  # Concurrent write to the same order
    FATAL = auto()  # Local retries exhausted
    STORE = auto()  # Storage backend failed
    INVARIANT = auto()  # Derived state inconsistent with inputs

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def retryable(self) -> bool:
        """Retried locally (bounded) before surfacing."""
        return self in (ErrorKind.COLLISION, ErrorKind.CONFLICT)


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.PAYMENT: 400,
    ErrorKind.TRANSITION: 409,
    ErrorKind.ACCESS: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.COLLISION: 503,
    ErrorKind.CONFLICT: 503,
    ErrorKind.FATAL: 500,
    ErrorKind.STORE: 500,
    ErrorKind.INVARIANT: 500,
}


# ═══════════════════════════════════════════════════════════════════════════════
# Base Error
# ═══════════════════════════════════════════════════════════════════════════════


class BillingError(Exception):
    """
    Base billing error.

    Example:
        raise InvalidLineItemError("quantity must be >= 1", item="Latte", quantity=0)
    """

    kind: ClassVar[ErrorKind] = ErrorKind.VALIDATION
    code: ClassVar[str] = "BILLING_ERROR"

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code,
            "message": self.message,
            "context": {k: str(v) for k, v in self.context.items()},
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


# ═══════════════════════════════════════════════════════════════════════════════
# Client Errors (never retried)
# ═══════════════════════════════════════════════════════════════════════════════


class ValidationError(BillingError):
    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"


class InvalidLineItemError(ValidationError):
    code = "INVALID_LINE_ITEM"


class InvalidPaymentAmountError(BillingError):
    kind = ErrorKind.PAYMENT
    code = "INVALID_PAYMENT_AMOUNT"


class InvalidTransitionError(BillingError):
    kind = ErrorKind.TRANSITION
    code = "INVALID_TRANSITION"


class AccessDeniedError(BillingError):
    kind = ErrorKind.ACCESS
    code = "ACCESS_DENIED"


class OrderNotFoundError(BillingError):
    kind = ErrorKind.NOT_FOUND
    code = "ORDER_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════════
# Retryable Errors (retried locally)
# ═══════════════════════════════════════════════════════════════════════════════


class IdentityCollisionError(BillingError):
    kind = ErrorKind.COLLISION
    code = "IDENTITY_COLLISION"


class WriteConflictError(BillingError):
    kind = ErrorKind.CONFLICT
    code = "WRITE_CONFLICT"


# ═══════════════════════════════════════════════════════════════════════════════
# Server Errors
# ═══════════════════════════════════════════════════════════════════════════════


class OrderCreationError(BillingError):
    kind = ErrorKind.FATAL
    code = "ORDER_CREATION_FAILED"


class StoreError(BillingError):
    kind = ErrorKind.STORE
    code = "STORE_ERROR"

    def __init__(
        self, message: str, cause: Exception | None = None, **context: object
    ) -> None:
        super().__init__(message, **context)
        self.cause = cause


class InvariantViolationError(BillingError):
    kind = ErrorKind.INVARIANT
    code = "INVARIANT_VIOLATION"


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "ErrorKind",
    "BillingError",
    "ValidationError",
    "InvalidLineItemError",
    "InvalidPaymentAmountError",
    "InvalidTransitionError",
    "AccessDeniedError",
    "OrderNotFoundError",
    "IdentityCollisionError",
    "WriteConflictError",
    "OrderCreationError",
    "StoreError",
    "InvariantViolationError",
)
