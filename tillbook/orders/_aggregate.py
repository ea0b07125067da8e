"""
Order aggregate — pure operations on Order.

Each operation returns a new Order or the first error; the input is never
touched. check_invariants() runs last in every operation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone

from kungfu import Result, Ok, Error

from tillbook._types import ZERO, floor_zero, money
from tillbook.bills import (
    Allocation,
    OrderLineItem,
    PaymentStatus,
    Pricing,
    Tender,
    apply_tender,
    compute_bills,
)
from tillbook.errors import (
    AccessDeniedError,
    BillingError,
    InvariantViolationError,
    ValidationError,
)
from tillbook.identity import OrderIdentity
from tillbook.lifecycle import OrderStatus, check_transition
from tillbook.orders._types import Actor, Customer, Order, Quote


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _price(
    items: tuple[OrderLineItem, ...], pricing: Pricing, tender: Tender
) -> Result[Allocation, BillingError]:
    match compute_bills(items, pricing.discounts, pricing.tax, pricing.rates):
        case Ok(bill):
            return apply_tender(bill, tender)
        case Error(e):
            return Error(e)


def _apply(order: Order, allocation: Allocation, **changes: object) -> Order:
    return replace(
        order,
        bills=allocation.bill,
        payment_status=allocation.payment_status,
        payment_method=allocation.payment_method,
        **changes,
    )


def _ensure_open(order: Order, action: str) -> Result[Order, BillingError]:
    if order.is_closed:
        return Error(
            ValidationError(
                f"cannot {action} on a {order.order_status.value} order",
                order_id=order.order_id,
                order_status=order.order_status.value,
            )
        )
    return Ok(order)


# ═══════════════════════════════════════════════════════════════════════════════
# Invariants
# ═══════════════════════════════════════════════════════════════════════════════


def _violation(invariant: str, order: Order, **context: object) -> Error:
    return Error(
        InvariantViolationError(
            f"{invariant} invariant violated",
            invariant=invariant,
            order_id=order.order_id,
            **context,
        )
    )


def check_invariants(order: Order) -> Result[Order, BillingError]:
    """
    Verify that the derived fields of order agree with its inputs.

    item-subtotal   subtotal == Σ payable line totals
    bill-total      total_with_tax == max(0, subtotal + tax − discounts)
    payment-derived paid/change/remaining follow from the tenders
    payment-status  status is consistent with amount_paid vs total
    """
    bill = order.bills

    subtotal = money(sum((i.payable_total for i in order.items), ZERO))
    if bill.subtotal != subtotal:
        return _violation("item-subtotal", order, expected=subtotal, actual=bill.subtotal)

    total = floor_zero(bill.subtotal + bill.tax - bill.total_discount)
    if bill.total_with_tax != total:
        return _violation("bill-total", order, expected=total, actual=bill.total_with_tax)

    paid = money(bill.cash_amount + bill.online_amount)
    change = floor_zero(paid - bill.total_with_tax)
    remaining = floor_zero(bill.total_with_tax - paid) if bill.is_partial_payment else ZERO
    if (bill.amount_paid, bill.change, bill.remaining_balance) != (paid, change, remaining):
        return _violation(
            "payment-derived",
            order,
            amount_paid=bill.amount_paid,
            change=bill.change,
            remaining_balance=bill.remaining_balance,
        )

    status = order.payment_status
    total = bill.total_with_tax
    in_range = {
        PaymentStatus.COMPLETED: paid >= total,
        PaymentStatus.PARTIAL: ZERO < paid < total,
        PaymentStatus.PENDING: paid == 0 and total > 0,
    }.get(status, True)
    partial_flag_ok = status in (PaymentStatus.FAILED, PaymentStatus.REFUNDED) or (
        bill.is_partial_payment == (status is PaymentStatus.PARTIAL)
    )
    if not (in_range and partial_flag_ok):
        return _violation(
            "payment-status",
            order,
            payment_status=status.value,
            amount_paid=paid,
            total_with_tax=total,
        )

    return Ok(order)


# ═══════════════════════════════════════════════════════════════════════════════
# Operations
# ═══════════════════════════════════════════════════════════════════════════════


def quote(
    items: Iterable[OrderLineItem], pricing: Pricing, tender: Tender = Tender()
) -> Result[Quote, BillingError]:
    """Price a cart and apply the tender."""
    lines = tuple(items)
    if not lines:
        return Error(ValidationError("order must contain at least one item", field="items"))
    match _price(lines, pricing, tender):
        case Ok(allocation):
            return Ok(Quote(items=lines, pricing=pricing, allocation=allocation))
        case Error(e):
            return Error(e)


def create(
    priced: Quote,
    identity: OrderIdentity,
    *,
    owner_user_id: str,
    created_at: datetime | None = None,
    customer: Customer = Customer(),
    table_id: str | None = None,
    notes: str = "",
) -> Result[Order, BillingError]:
    """Assemble a pending order from a quote and a claimed identity."""
    if not owner_user_id:
        return Error(ValidationError("order must have an owner", field="owner_user_id"))
    if customer.guests < 1:
        return Error(ValidationError("guests must be >= 1", field="customer.guests"))
    at = created_at or _now()
    order = Order(
        order_number=identity.order_number,
        order_id=identity.order_id,
        items=priced.items,
        bills=priced.bills,
        pricing=priced.pricing,
        payment_method=priced.allocation.payment_method,
        payment_status=priced.allocation.payment_status,
        order_status=OrderStatus.PENDING,
        owner_user_id=owner_user_id,
        created_at=at,
        updated_at=at,
        customer=customer,
        table_id=table_id,
        notes=notes,
    )
    return check_invariants(order)


def add_item(
    order: Order, item: OrderLineItem, now: datetime | None = None
) -> Result[Order, BillingError]:
    """
    Append an item and re-price with the stored tenders.

    Note: A completed payment may drop back to partial.
    """
    match _ensure_open(order, "add items"):
        case Error(e):
            return Error(e)
        case Ok(_):
            pass
    items = (*order.items, item)
    match _price(items, order.pricing, order.bills.tender):
        case Ok(allocation):
            return check_invariants(
                _apply(order, allocation, items=items, updated_at=now or _now())
            )
        case Error(e):
            return Error(e)


def record_payment(
    order: Order, tender: Tender, now: datetime | None = None
) -> Result[Order, BillingError]:
    """Replace the order's tenders and re-derive payment fields."""
    match _ensure_open(order, "record payment"):
        case Error(e):
            return Error(e)
        case Ok(_):
            pass
    match apply_tender(order.bills, tender):
        case Ok(allocation):
            return check_invariants(_apply(order, allocation, updated_at=now or _now()))
        case Error(e):
            return Error(e)


def set_order_status(
    order: Order, status: OrderStatus, now: datetime | None = None
) -> Result[Order, BillingError]:
    match check_transition(
        order.order_status, status, order.payment_status, order.bills.remaining_balance
    ):
        case Ok(next_status):
            return check_invariants(
                replace(order, order_status=next_status, updated_at=now or _now())
            )
        case Error(e):
            return Error(e)


def authorize(actor: Actor, order: Order) -> Result[Order, BillingError]:
    """Admins see everything; cashiers only their own orders."""
    if actor.is_admin or order.owner_user_id == actor.user_id:
        return Ok(order)
    return Error(
        AccessDeniedError(
            "order belongs to another user",
            order_id=order.order_id,
            user_id=actor.user_id,
        )
    )


__all__ = (
    "quote",
    "create",
    "add_item",
    "record_payment",
    "set_order_status",
    "authorize",
    "check_invariants",
)
