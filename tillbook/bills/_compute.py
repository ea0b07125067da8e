"""
Money/discount calculator — items + pricing → BillSummary.

Pure: reads nothing, writes nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from kungfu import Result, Ok, Error

from tillbook._types import Money, ZERO, floor_zero, money
from tillbook.errors import BillingError, InvalidLineItemError, ValidationError
from tillbook.bills._types import (
    OrderLineItem,
    DiscountInputs,
    DiscountRates,
    TaxRule,
    BillSummary,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


def validate_item(item: OrderLineItem) -> Result[OrderLineItem, BillingError]:
    """Check one line item against the line-item constraints."""
    if not item.name or not item.name.strip():
        return Error(InvalidLineItemError("item name must not be empty"))
    if isinstance(item.quantity, bool) or not isinstance(item.quantity, int):
        return Error(
            InvalidLineItemError(
                "quantity must be an integer", item=item.name, quantity=item.quantity
            )
        )
    if item.quantity < 1:
        return Error(
            InvalidLineItemError(
                "quantity must be >= 1", item=item.name, quantity=item.quantity
            )
        )
    if Decimal(item.unit_price) < 0:
        return Error(
            InvalidLineItemError(
                "unit price must be >= 0", item=item.name, unit_price=item.unit_price
            )
        )
    if Decimal(item.unit_price) != money(item.unit_price):
        return Error(
            InvalidLineItemError(
                "unit price must be in whole cents", item=item.name, unit_price=item.unit_price
            )
        )
    return Ok(item)


def _validate_pricing(
    discounts: DiscountInputs, tax: TaxRule, rates: DiscountRates
) -> Result[None, BillingError]:
    if Decimal(discounts.redemption_amount) < 0:
        return Error(
            ValidationError(
                "redemption amount must be >= 0",
                redemption_amount=discounts.redemption_amount,
            )
        )
    if Decimal(tax.amount) < 0 or (tax.rate is not None and tax.rate < 0):
        return Error(ValidationError("tax must be >= 0", amount=tax.amount, rate=tax.rate))
    for name in ("pwd_senior", "employee", "shareholder"):
        rate = getattr(rates, name)
        if not Decimal(0) <= rate <= Decimal(1):
            return Error(
                ValidationError("discount rate must be within 0..1", discount=name, rate=rate)
            )
    return Ok(None)


# ═══════════════════════════════════════════════════════════════════════════════
# compute_bills()
# ═══════════════════════════════════════════════════════════════════════════════


def compute_bills(
    items: Iterable[OrderLineItem],
    discounts: DiscountInputs,
    tax: TaxRule,
    rates: DiscountRates = DiscountRates(),
) -> Result[BillSummary, BillingError]:
    """
    Compute the bill for a list of line items.

    Rules:
        subtotal          = Σ line_total of non-redeemed items
        pwd/senior        = rate × Σ line_total of flagged, non-redeemed items
        employee          = rate × subtotal
        shareholder       = rate × subtotal
        redemption        = redemption_amount, capped at subtotal
        total_with_tax    = max(0, subtotal + tax − Σdiscounts)
        net_sales         = subtotal − Σdiscounts

    Each discount is taken against its base independently, never compounded.
    Tender fields of the returned bill are zero — see apply_payment().

    Example:
        match compute_bills(items, DiscountInputs(), TaxRule.flat("38")):
            case Ok(bill):
                print(bill.total_with_tax)
            case Error(e):
                print(e.code)
    """
    lines = tuple(items)
    for item in lines:
        match validate_item(item):
            case Error(e):
                return Error(e)
            case Ok(_):
                pass

    match _validate_pricing(discounts, tax, rates):
        case Error(e):
            return Error(e)
        case Ok(_):
            pass

    subtotal = money(sum((i.payable_total for i in lines), ZERO))
    flagged = money(
        sum((i.payable_total for i in lines if i.is_pwd_senior_discounted), ZERO)
    )
    redeemed_value = money(
        sum((i.line_total for i in lines if i.is_redeemed), ZERO)
    )

    pwd_senior = money(flagged * rates.pwd_senior) if discounts.pwd_senior else ZERO
    employee = money(subtotal * rates.employee) if discounts.employee else ZERO
    shareholder = money(subtotal * rates.shareholder) if discounts.shareholder else ZERO
    redemption = money(min(Decimal(discounts.redemption_amount), subtotal))

    tax_amount = tax.tax_for(subtotal)
    total_discount: Money = pwd_senior + employee + shareholder + redemption
    total_with_tax = floor_zero(subtotal + tax_amount - total_discount)

    return Ok(
        BillSummary(
            subtotal=subtotal,
            tax=tax_amount,
            pwd_senior_discount=pwd_senior,
            employee_discount=employee,
            shareholder_discount=shareholder,
            redemption_discount=redemption,
            redeemed_value=redeemed_value,
            total_with_tax=total_with_tax,
            net_sales=money(subtotal - total_discount),
        )
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("compute_bills", "validate_item")
