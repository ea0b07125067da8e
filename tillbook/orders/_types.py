"""
Order types — the aggregate root and the values around it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from tillbook._types import Money
from tillbook.bills import (
    Allocation,
    BillSummary,
    OrderLineItem,
    PaymentMethod,
    PaymentStatus,
    Pricing,
)
from tillbook.lifecycle import OrderStatus


# ═══════════════════════════════════════════════════════════════════════════════
# Actors
# ═══════════════════════════════════════════════════════════════════════════════


class Role(Enum):
    ADMIN = "admin"
    CASHIER = "cashier"


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated caller, as vouched for by the auth service."""

    user_id: str
    role: Role = Role.CASHIER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


# ═══════════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Customer:
    name: str = "Walk-in Customer"
    phone: str = "N/A"
    guests: int = 1


@dataclass(frozen=True, slots=True)
class Order:
    """
    Aggregate root.

    Note: Never mutated. Every operation returns a new Order; version is
    bumped by the store on each successful write.
    """

    order_number: str
    order_id: str
    items: tuple[OrderLineItem, ...]
    bills: BillSummary
    pricing: Pricing
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_status: OrderStatus
    owner_user_id: str
    created_at: datetime
    updated_at: datetime
    customer: Customer = field(default_factory=Customer)
    table_id: str | None = None
    notes: str = ""
    version: int = 1

    @property
    def is_closed(self) -> bool:
        return self.order_status.is_terminal


@dataclass(frozen=True, slots=True)
class Quote:
    """Priced and paid cart, before it has an identity."""

    items: tuple[OrderLineItem, ...]
    pricing: Pricing
    allocation: Allocation

    @property
    def bills(self) -> BillSummary:
        return self.allocation.bill


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SettlementEvent:
    """
    Verified payment-gateway notification.

    Note: amount_settled is the total online amount for the order, not an
    increment, so redelivery lands on the same bill.
    """

    order_id: str
    amount_settled: Money
    method: PaymentMethod = PaymentMethod.ONLINE_GCASH


__all__ = (
    "Role",
    "Actor",
    "Customer",
    "Order",
    "Quote",
    "SettlementEvent",
)
