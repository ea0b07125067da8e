"""
Order service — the async application boundary.

Every mutation is load → authorize → pure operation → conditional write,
retried a bounded number of times on WriteConflictError. Creation runs the
checkout graph and retries on IdentityCollisionError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error, LazyCoroResult
from combinators import parallel as C_parallel, lift as L

from tillbook.bills import DiscountInputs, OrderLineItem, Tender
from tillbook.config import Settings
from tillbook.errors import (
    BillingError,
    IdentityCollisionError,
    OrderCreationError,
    OrderNotFoundError,
    StoreError,
    ValidationError,
    WriteConflictError,
)
from tillbook.identity import DailySequence
from tillbook.lifecycle import OrderStatus
from tillbook.orders._aggregate import add_item, authorize, record_payment, set_order_status
from tillbook.orders._checkout import CheckoutRequest, checkout
from tillbook.orders._query import OrderQuery
from tillbook.orders._types import Actor, Customer, Order, Role, SettlementEvent
from tillbook.reports._sales import RangeSales, SalesReport, build_sales_report, sales_in_range

if TYPE_CHECKING:
    from tillbook.storage import OrderStore

logger = logging.getLogger(__name__)

GATEWAY = Actor(user_id="payment-gateway", role=Role.ADMIN)
"""Actor used for verified gateway settlements."""

type Operation = Callable[[Order], Result[Order, BillingError]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """
    Order lifecycle over an OrderStore and a DailySequence.

    Example:
        service = OrderService(MemoryOrderStore(), MemorySequence(), Settings())

        match await service.create(actor, items, tender=Tender(cash=Decimal("500"))):
            case Ok(order):
                print(order.order_number, order.bills.change)
            case Error(e):
                print(e.code, e.message)
    """

    def __init__(
        self,
        store: OrderStore,
        sequence: DailySequence,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._sequence = sequence
        self._settings = settings or Settings()
        self._clock = clock

    @property
    def settings(self) -> Settings:
        return self._settings

    # ═══════════════════════════════════════════════════════════════════════════
    # Create
    # ═══════════════════════════════════════════════════════════════════════════

    async def create(
        self,
        actor: Actor,
        items: Iterable[OrderLineItem],
        *,
        discounts: DiscountInputs | None = None,
        tender: Tender | None = None,
        customer: Customer | None = None,
        table_id: str | None = None,
        notes: str = "",
    ) -> Result[Order, BillingError]:
        lines = tuple(items)
        attempts = self._settings.retry.identity_attempts

        for attempt in range(1, attempts + 1):
            request = CheckoutRequest(
                items=lines,
                owner_user_id=actor.user_id,
                sequence=self._sequence,
                created_at=self._clock(),
                pricing=self._settings.pricing(discounts),
                tender=tender or Tender(),
                customer=customer or Customer(),
                table_id=table_id,
                notes=notes,
                prefix=self._settings.order_prefix,
                tz=self._settings.tz,
            )
            match await checkout(request):
                case Ok(draft):
                    pass
                case Error(e):
                    return Error(e)

            match await self._store.insert(draft):
                case Ok(order):
                    logger.info(
                        "order created %s %s total=%s status=%s",
                        order.order_id,
                        order.order_number,
                        order.bills.total_with_tax,
                        order.payment_status.value,
                    )
                    return Ok(order)
                case Error(e) if isinstance(e, IdentityCollisionError):
                    logger.warning(
                        "identity collision on %s (attempt %d/%d)",
                        draft.order_number,
                        attempt,
                        attempts,
                    )
                case Error(e):
                    logger.error("order insert failed: %s %s", e.code, e.message)
                    return Error(e)

        logger.error("order creation gave up after %d identity attempts", attempts)
        return Error(
            OrderCreationError(
                "could not allocate a unique order identity", attempts=attempts
            )
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Mutations
    # ═══════════════════════════════════════════════════════════════════════════

    async def add_item(
        self, actor: Actor, order_id: str, item: OrderLineItem
    ) -> Result[Order, BillingError]:
        return await self._mutate(
            actor, order_id, "add_item", lambda o: add_item(o, item, self._clock())
        )

    async def record_payment(
        self, actor: Actor, order_id: str, tender: Tender
    ) -> Result[Order, BillingError]:
        return await self._mutate(
            actor,
            order_id,
            "record_payment",
            lambda o: record_payment(o, tender, self._clock()),
        )

    async def set_order_status(
        self, actor: Actor, order_id: str, status: OrderStatus
    ) -> Result[Order, BillingError]:
        return await self._mutate(
            actor,
            order_id,
            "set_order_status",
            lambda o: set_order_status(o, status, self._clock()),
        )

    async def settle(self, event: SettlementEvent) -> Result[Order, BillingError]:
        """
        Apply a verified gateway settlement.

        The settled amount replaces the online tender and the stored cash
        amount is kept, so a redelivered event changes nothing.
        """

        def apply(order: Order) -> Result[Order, BillingError]:
            tender = Tender(
                cash=order.bills.cash_amount,
                online=event.amount_settled,
                online_method=event.method,
            )
            if order.bills.tender == tender:
                return Ok(order)
            return record_payment(order, tender, self._clock())

        return await self._mutate(GATEWAY, event.order_id, "settle", apply)

    async def reconcile(
        self, events: Sequence[SettlementEvent]
    ) -> Result[list[Result[Order, BillingError]], BillingError]:
        """
        Settle many events concurrently. Each event succeeds or fails alone.

        Example:
            match await service.reconcile(events):
                case Ok(results):
                    failed = [r for r in results if isinstance(r, Error)]
        """

        def make_op(
            event: SettlementEvent,
        ) -> LazyCoroResult[Result[Order, BillingError], BillingError]:
            return L.catching_async(
                lambda ev=event: self.settle(ev),
                on_error=lambda e: StoreError(f"settlement crashed: {e}", e),
            )

        if not events:
            return Ok([])

        match await C_parallel(*[make_op(ev) for ev in events]):
            case Ok(results):
                settled = sum(1 for r in results if isinstance(r, Ok))
                logger.info("reconciled %d/%d settlements", settled, len(events))
                return Ok(list(results))
            case Error(e):
                logger.error("reconcile aborted: %s", e)
                return Error(e)

    # ═══════════════════════════════════════════════════════════════════════════
    # Reads
    # ═══════════════════════════════════════════════════════════════════════════

    async def get_order(self, actor: Actor, order_id: str) -> Result[Order, BillingError]:
        match await self._store.get(order_id):
            case Ok(None):
                return Error(OrderNotFoundError("order not found", order_id=order_id))
            case Ok(order):
                return authorize(actor, order)
            case Error(e):
                return Error(e)

    async def list_orders(
        self, actor: Actor, query: OrderQuery | None = None
    ) -> Result[list[Order], BillingError]:
        """Orders visible to actor, newest first."""
        return await self._store.query((query or OrderQuery()).scoped_for(actor))

    async def sales_report(
        self, actor: Actor, query: OrderQuery | None = None
    ) -> Result[SalesReport, BillingError]:
        match await self.list_orders(actor, query):
            case Ok(orders):
                return Ok(build_sales_report(orders, self._clock(), self._settings.tz))
            case Error(e):
                return Error(e)

    async def sales_in_range(
        self, actor: Actor, start: datetime, end: datetime
    ) -> Result[RangeSales, BillingError]:
        """
        Completed sales created between start and end, both inclusive.

        Example:
            match await service.sales_in_range(admin, monday, sunday):
                case Ok(sales):
                    print(sales.total_orders, sales.total_sales)
        """
        query = (
            OrderQuery()
            .with_order_status(OrderStatus.COMPLETED)
            .with_created_range(start, None)
        )
        match await self.list_orders(actor, query):
            case Ok(orders):
                pass
            case Error(e):
                return Error(e)
        try:
            return Ok(sales_in_range(orders, start, end))
        except ValueError as e:
            return Error(ValidationError(str(e), start=start, end=end))

    # ═══════════════════════════════════════════════════════════════════════════
    # Internals
    # ═══════════════════════════════════════════════════════════════════════════

    async def _mutate(
        self, actor: Actor, order_id: str, action: str, operation: Operation
    ) -> Result[Order, BillingError]:
        attempts = self._settings.retry.write_attempts
        conflict: BillingError | None = None

        for attempt in range(1, attempts + 1):
            match await self.get_order(actor, order_id):
                case Ok(current):
                    pass
                case Error(e):
                    return Error(e)

            match operation(current):
                case Ok(updated):
                    pass
                case Error(e):
                    logger.info("%s rejected on %s: %s", action, order_id, e.code)
                    return Error(e)

            if updated is current:
                return Ok(current)

            match await self._store.replace(updated):
                case Ok(stored):
                    logger.info(
                        "%s on %s %s: order=%s payment=%s paid=%s",
                        action,
                        stored.order_id,
                        stored.order_number,
                        stored.order_status.value,
                        stored.payment_status.value,
                        stored.bills.amount_paid,
                    )
                    return Ok(stored)
                case Error(e) if isinstance(e, WriteConflictError):
                    conflict = e
                    logger.warning(
                        "%s write conflict on %s (attempt %d/%d)",
                        action,
                        order_id,
                        attempt,
                        attempts,
                    )
                case Error(e):
                    logger.error("%s failed on %s: %s %s", action, order_id, e.code, e.message)
                    return Error(e)

        logger.error("%s on %s gave up after %d write attempts", action, order_id, attempts)
        return Error(
            conflict
            or WriteConflictError("order kept changing underneath", order_id=order_id)
        )


__all__ = ("OrderService", "GATEWAY")
