"""
Lifecycle — order status state machine.

    pending → confirmed → preparing → ready → served → completed
                          (processing, in-progress ≡ preparing)

    any non-terminal ──► cancelled
    completed, cancelled: terminal

    from tillbook import lifecycle as LC

    LC.check_transition(LC.OrderStatus.PENDING, LC.OrderStatus.COMPLETED,
                        PaymentStatus.COMPLETED, Decimal("0"))
"""

from tillbook.lifecycle._machine import (
    OrderStatus,
    TERMINAL,
    TRANSITIONS,
    can_transition,
    check_transition,
)

__all__ = (
    "OrderStatus",
    "TERMINAL",
    "TRANSITIONS",
    "can_transition",
    "check_transition",
)
