"""
Payment allocation — tender against a bill → derived payment fields.

apply_payment() recomputes everything from the tender it is given, so calling
it twice with the same tender yields the same bill.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from kungfu import Result, Ok, Error

from tillbook._types import Money, ZERO, floor_zero, money
from tillbook.errors import BillingError, InvalidPaymentAmountError, ValidationError
from tillbook.bills._types import (
    Allocation,
    BillSummary,
    PaymentMethod,
    PaymentStatus,
    Tender,
)

DEFAULT_ONLINE_METHOD = PaymentMethod.ONLINE_GCASH


def _status_for(amount_paid: Money, total: Money) -> PaymentStatus:
    if amount_paid >= total:
        return PaymentStatus.COMPLETED
    if amount_paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def _method_for(
    cash: Money, online: Money, online_method: PaymentMethod | None
) -> PaymentMethod:
    if cash > 0 and online > 0:
        return PaymentMethod.MIXED
    if online > 0:
        return online_method or DEFAULT_ONLINE_METHOD
    return PaymentMethod.CASH


def apply_payment(
    bill: BillSummary,
    cash: Money | int | str = ZERO,
    online: Money | int | str = ZERO,
    online_method: PaymentMethod | None = None,
) -> Result[Allocation, BillingError]:
    """
    Apply cash/online tenders to a computed bill.

    Example:
        match apply_payment(bill, cash=Decimal("500")):
            case Ok(Allocation(bill=paid, payment_status=status)):
                print(paid.change, status)
            case Error(e):
                print(e.code)
    """
    cash_d, online_d = Decimal(cash), Decimal(online)
    if cash_d < 0 or online_d < 0:
        return Error(
            InvalidPaymentAmountError(
                "payment amounts must be >= 0", cash=cash_d, online=online_d
            )
        )
    if online_method is not None and not online_method.is_online:
        return Error(
            ValidationError(
                "online method must be an online channel",
                online_method=online_method.value,
            )
        )

    cash_m, online_m = money(cash_d), money(online_d)
    amount_paid = money(cash_m + online_m)
    total = bill.total_with_tax
    status = _status_for(amount_paid, total)
    method = _method_for(cash_m, online_m, online_method)
    partial = status is PaymentStatus.PARTIAL

    paid = replace(
        bill,
        cash_amount=cash_m,
        online_amount=online_m,
        online_method=(online_method or DEFAULT_ONLINE_METHOD) if online_m > 0 else None,
        amount_paid=amount_paid,
        change=floor_zero(amount_paid - total),
        remaining_balance=floor_zero(total - amount_paid) if partial else ZERO,
        is_partial_payment=partial,
    )
    return Ok(Allocation(bill=paid, payment_status=status, payment_method=method))


def apply_tender(bill: BillSummary, tender: Tender) -> Result[Allocation, BillingError]:
    """apply_payment() taking a Tender value."""
    return apply_payment(bill, tender.cash, tender.online, tender.online_method)


__all__ = ("apply_payment", "apply_tender", "DEFAULT_ONLINE_METHOD")
