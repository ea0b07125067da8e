"""
Order query — filter over stored orders.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from tillbook.bills import PaymentStatus
from tillbook.lifecycle import OrderStatus
from tillbook.orders._types import Actor, Order


def _aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True, slots=True)
class OrderQuery:
    """
    Which orders to list. Results come newest first.

    Example:
        q = (
            OrderQuery()
            .with_order_status(OrderStatus.COMPLETED)
            .with_created_range(start, end)
            .with_limit(50)
            .scoped_for(actor)
        )
    """

    owner_user_id: str | None = None
    order_statuses: frozenset[OrderStatus] = frozenset()
    payment_statuses: frozenset[PaymentStatus] = frozenset()
    created_from: datetime | None = None
    created_to: datetime | None = None  # exclusive
    limit: int | None = None

    def with_owner(self, user_id: str) -> OrderQuery:
        return replace(self, owner_user_id=user_id)

    def with_order_status(self, *statuses: OrderStatus) -> OrderQuery:
        return replace(self, order_statuses=frozenset(statuses))

    def with_payment_status(self, *statuses: PaymentStatus) -> OrderQuery:
        return replace(self, payment_statuses=frozenset(statuses))

    def with_created_range(
        self, start: datetime | None, end: datetime | None
    ) -> OrderQuery:
        """Naive bounds are taken as UTC."""
        return replace(self, created_from=_aware(start), created_to=_aware(end))

    def with_limit(self, limit: int | None) -> OrderQuery:
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        return replace(self, limit=limit)

    def scoped_for(self, actor: Actor) -> OrderQuery:
        """Cashiers only ever see their own orders."""
        if actor.is_admin:
            return self
        return replace(self, owner_user_id=actor.user_id)

    def matches(self, order: Order) -> bool:
        if self.owner_user_id is not None and order.owner_user_id != self.owner_user_id:
            return False
        if self.order_statuses and order.order_status not in self.order_statuses:
            return False
        if self.payment_statuses and order.payment_status not in self.payment_statuses:
            return False
        if self.created_from is not None and order.created_at < self.created_from:
            return False
        if self.created_to is not None and order.created_at >= self.created_to:
            return False
        return True

    def apply(self, orders: Iterable[Order]) -> list[Order]:
        found = sorted(
            (o for o in orders if self.matches(o)),
            key=lambda o: o.created_at,
            reverse=True,
        )
        return found if self.limit is None else found[: self.limit]


__all__ = ("OrderQuery",)
