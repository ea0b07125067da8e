"""
In-memory order store.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

from kungfu import Result, Ok, Error

from tillbook.errors import (
    BillingError,
    IdentityCollisionError,
    OrderNotFoundError,
    WriteConflictError,
)
from tillbook.orders._query import OrderQuery
from tillbook.orders._types import Order


class MemoryOrderStore:
    """
    In-memory order store.

    Note: Single process only; nothing survives a restart. Same contract as
    SQLAlchemyOrderStore, so it backs tests and local runs.
    """

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._numbers: set[str] = set()
        self._lock = asyncio.Lock()

    async def get(self, order_id: str) -> Result[Order | None, BillingError]:
        async with self._lock:
            return Ok(self._orders.get(order_id))

    async def insert(self, order: Order) -> Result[Order, BillingError]:
        async with self._lock:
            if order.order_id in self._orders or order.order_number in self._numbers:
                return Error(
                    IdentityCollisionError(
                        "order identity already taken",
                        order_id=order.order_id,
                        order_number=order.order_number,
                    )
                )
            self._orders[order.order_id] = order
            self._numbers.add(order.order_number)
            return Ok(order)

    async def replace(self, order: Order) -> Result[Order, BillingError]:
        async with self._lock:
            current = self._orders.get(order.order_id)
            if current is None:
                return Error(OrderNotFoundError("order not found", order_id=order.order_id))
            if current.version != order.version:
                return Error(
                    WriteConflictError(
                        "order was modified concurrently",
                        order_id=order.order_id,
                        expected_version=order.version,
                        actual_version=current.version,
                    )
                )
            stored = replace(order, version=order.version + 1)
            self._orders[order.order_id] = stored
            return Ok(stored)

    async def query(self, query: OrderQuery) -> Result[list[Order], BillingError]:
        async with self._lock:
            return Ok(query.apply(self._orders.values()))

    def __len__(self) -> int:
        return len(self._orders)


__all__ = ("MemoryOrderStore",)
