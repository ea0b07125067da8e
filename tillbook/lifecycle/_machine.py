"""
Order lifecycle — explicit status table + completion guard.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from kungfu import Result, Ok, Error

from tillbook.bills import PaymentStatus
from tillbook.errors import BillingError, InvalidTransitionError


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    PROCESSING = "processing"
    IN_PROGRESS = "in-progress"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL


TERMINAL = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

# Position on the main chain. Kitchen aliases share the PREPARING slot.
_RANK: dict[OrderStatus, int] = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PREPARING: 2,
    OrderStatus.PROCESSING: 2,
    OrderStatus.IN_PROGRESS: 2,
    OrderStatus.READY: 3,
    OrderStatus.SERVED: 4,
    OrderStatus.COMPLETED: 5,
}


def _build_transitions() -> dict[OrderStatus, frozenset[OrderStatus]]:
    table: dict[OrderStatus, frozenset[OrderStatus]] = {}
    for status in OrderStatus:
        if status in TERMINAL:
            table[status] = frozenset()
            continue
        forward = {s for s, rank in _RANK.items() if rank > _RANK[status]}
        table[status] = frozenset(forward | {OrderStatus.CANCELLED})
    return table


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = _build_transitions()
"""Allowed moves: forward along the chain, or cancel while not terminal."""


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in TRANSITIONS[current]


def check_transition(
    current: OrderStatus,
    requested: OrderStatus,
    payment_status: PaymentStatus,
    remaining_balance: Decimal,
) -> Result[OrderStatus, BillingError]:
    """
    Validate a status change.

    Completing additionally requires a fully paid bill.

    Example:
        match check_transition(order.order_status, OrderStatus.COMPLETED,
                               order.payment_status, order.bills.remaining_balance):
            case Ok(status): ...
            case Error(e): ...  # InvalidTransitionError
    """
    if not can_transition(current, requested):
        return Error(
            InvalidTransitionError(
                f"cannot move order from {current.value} to {requested.value}",
                current=current.value,
                requested=requested.value,
            )
        )
    if requested is OrderStatus.COMPLETED and (
        payment_status is not PaymentStatus.COMPLETED or remaining_balance > 0
    ):
        return Error(
            InvalidTransitionError(
                "order cannot complete before it is fully paid",
                current=current.value,
                payment_status=payment_status.value,
                remaining_balance=remaining_balance,
            )
        )
    return Ok(requested)


__all__ = (
    "OrderStatus",
    "TERMINAL",
    "TRANSITIONS",
    "can_transition",
    "check_transition",
)
