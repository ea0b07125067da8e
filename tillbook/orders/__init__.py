"""
Orders — aggregate, checkout graph, application service.

    from tillbook import orders as O

    # Pure aggregate
    match O.quote(items, pricing, Tender(cash=Decimal("500"))):
        case Ok(q):
            O.create(q, identity, owner_user_id="u1")

    # Service
    service = O.OrderService(store, sequence, settings)
    await service.create(actor, items, tender=Tender(cash=Decimal("200")))
    await service.record_payment(actor, order_id, Tender(cash=Decimal("418")))
    await service.set_order_status(actor, order_id, OrderStatus.COMPLETED)

Mutation path:

    get ─► authorize ─► pure op ─► check_invariants ─► replace(version CAS)
                                                         │
                                   WriteConflictError ◄──┘ (re-read, bounded)
"""

from tillbook.orders._types import (
    Role,
    Actor,
    Customer,
    Order,
    Quote,
    SettlementEvent,
)
from tillbook.orders._aggregate import (
    quote,
    create,
    add_item,
    record_payment,
    set_order_status,
    authorize,
    check_invariants,
)
from tillbook.orders._query import OrderQuery
from tillbook.orders._checkout import CheckoutRequest, checkout
from tillbook.orders._service import OrderService, GATEWAY

__all__ = (
    # Types
    "Role",
    "Actor",
    "Customer",
    "Order",
    "Quote",
    "SettlementEvent",
    # Aggregate
    "quote",
    "create",
    "add_item",
    "record_payment",
    "set_order_status",
    "authorize",
    "check_invariants",
    # Query
    "OrderQuery",
    # Checkout
    "CheckoutRequest",
    "checkout",
    # Service
    "OrderService",
    "GATEWAY",
)
