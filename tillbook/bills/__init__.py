"""
Bills — money/discount calculator and payment allocation.

    from tillbook import bills as B

    items = [
        B.OrderLineItem("Latte", 2, Decimal("150")),
        B.OrderLineItem("Muffin", 1, Decimal("80"), is_pwd_senior_discounted=True),
    ]

    match B.compute_bills(items, B.DiscountInputs(), B.TaxRule.flat("38")):
        case Ok(bill):
            match B.apply_payment(bill, cash=Decimal("500")):
                case Ok(allocation):
                    print(allocation.bill.change, allocation.payment_status)

Flow:

    items + DiscountInputs + TaxRule + DiscountRates
         │
         ▼
    compute_bills ──► BillSummary (tender fields zero)
                           │
         cash + online ────┤
                           ▼
                     apply_payment ──► Allocation(bill, status, method)
"""

from tillbook.bills._types import (
    Category,
    PaymentMethod,
    PaymentStatus,
    OrderLineItem,
    DiscountInputs,
    DiscountRates,
    TaxRule,
    Pricing,
    Tender,
    BillSummary,
    Allocation,
)
from tillbook.bills._compute import compute_bills, validate_item
from tillbook.bills._payment import apply_payment, apply_tender, DEFAULT_ONLINE_METHOD

__all__ = (
    # Types
    "Category",
    "PaymentMethod",
    "PaymentStatus",
    "OrderLineItem",
    "DiscountInputs",
    "DiscountRates",
    "TaxRule",
    "Pricing",
    "Tender",
    "BillSummary",
    "Allocation",
    # Calculator
    "compute_bills",
    "validate_item",
    # Payment
    "apply_payment",
    "apply_tender",
    "DEFAULT_ONLINE_METHOD",
)
