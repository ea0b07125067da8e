"""
Order store — typed storage protocol.

All methods return Result for explicit error handling.
"""

from __future__ import annotations

from typing import Protocol

from kungfu import Result

from tillbook.errors import BillingError
from tillbook.orders._query import OrderQuery
from tillbook.orders._types import Order


class OrderStore(Protocol):
    """
    Order persistence protocol.

    Note: insert() must reject a duplicate order_id or order_number with
    IdentityCollisionError; replace() must be a compare-and-swap on version.
    """

    async def get(self, order_id: str) -> Result[Order | None, BillingError]:
        """Get order. Returns Ok(None) if not found."""
        ...

    async def insert(self, order: Order) -> Result[Order, BillingError]:
        """Store a new order as given."""
        ...

    async def replace(self, order: Order) -> Result[Order, BillingError]:
        """
        Overwrite the stored order if its version still equals order.version.

        Returns the stored order with version + 1; WriteConflictError when
        someone else wrote first, OrderNotFoundError when it is gone.
        """
        ...

    async def query(self, query: OrderQuery) -> Result[list[Order], BillingError]:
        """Orders matching query, newest first."""
        ...


__all__ = ("OrderStore",)
