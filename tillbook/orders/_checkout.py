"""
Checkout graph — cart → quote → identity → draft order.

    CheckoutRequest
         │
         ▼
    CheckoutInputNode
         │
         ▼
    QuoteNode            compute_bills + apply_payment
         │
         ▼
    IdentityNode         claims today's sequence slot (only once priced)
         │
         ▼
    DraftOrderNode       aggregate create + invariants

Nodes raise BillingError; checkout() turns it back into Error.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo

from kungfu import Result, Ok, Error

from tillbook import _graph as G
from tillbook.bills import OrderLineItem, Pricing, Tender
from tillbook.errors import BillingError
from tillbook.identity import DEFAULT_PREFIX, DailySequence, OrderIdentity, claim_identity
from tillbook.orders._aggregate import create, quote
from tillbook.orders._types import Customer, Order, Quote

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    """Everything needed to open one order."""

    items: tuple[OrderLineItem, ...]
    owner_user_id: str
    sequence: DailySequence
    created_at: datetime
    pricing: Pricing = field(default_factory=Pricing)
    tender: Tender = field(default_factory=Tender)
    customer: Customer = field(default_factory=Customer)
    table_id: str | None = None
    notes: str = ""
    prefix: str = DEFAULT_PREFIX
    tz: tzinfo = timezone.utc


# ═══════════════════════════════════════════════════════════════════════════════
# Nodes
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class CheckoutInputNode:
    """Entry point: wraps the request."""

    def __init__(self, data: CheckoutRequest) -> None:
        self.data = data

    @classmethod
    def __compose__(cls, request: CheckoutRequest) -> "CheckoutInputNode":
        return cls(request)


@G.node
class QuoteNode:
    def __init__(self, data: Quote) -> None:
        self.data = data

    @classmethod
    def __compose__(cls, request: CheckoutInputNode) -> "QuoteNode":
        req = request.data
        match quote(req.items, req.pricing, req.tender):
            case Ok(priced):
                return cls(priced)
            case Error(e):
                raise e


@G.node
class IdentityNode:
    def __init__(self, data: OrderIdentity) -> None:
        self.data = data

    @classmethod
    async def __compose__(
        cls, request: CheckoutInputNode, priced: QuoteNode
    ) -> "IdentityNode":
        req = request.data
        match await claim_identity(req.sequence, req.created_at, req.prefix, req.tz):
            case Ok(ident):
                return cls(ident)
            case Error(e):
                raise e


@G.node
class DraftOrderNode:
    """Terminal node: the assembled, not yet stored, order."""

    def __init__(self, data: Order) -> None:
        self.data = data

    @classmethod
    def __compose__(
        cls, request: CheckoutInputNode, priced: QuoteNode, ident: IdentityNode
    ) -> "DraftOrderNode":
        req = request.data
        match create(
            priced.data,
            ident.data,
            owner_user_id=req.owner_user_id,
            created_at=req.created_at,
            customer=req.customer,
            table_id=req.table_id,
            notes=req.notes,
        ):
            case Ok(order):
                return cls(order)
            case Error(e):
                raise e


# ═══════════════════════════════════════════════════════════════════════════════
# Entry
# ═══════════════════════════════════════════════════════════════════════════════


async def checkout(request: CheckoutRequest) -> Result[Order, BillingError]:
    """
    Run the checkout graph for one request.

    Example:
        match await checkout(CheckoutRequest(items, "u1", sequence, now)):
            case Ok(order): ...
            case Error(e): ...
    """
    try:
        draft = await G.compose(DraftOrderNode, request, detail="checkout")
    except BillingError as e:
        logger.info("checkout rejected: %s %s", e.code, e.message)
        return Error(e)
    return Ok(draft.data)


__all__ = (
    "CheckoutRequest",
    "CheckoutInputNode",
    "QuoteNode",
    "IdentityNode",
    "DraftOrderNode",
    "checkout",
)
