"""
Bill types — line items, pricing inputs, bill summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from tillbook._types import Money, ZERO, money


# ═══════════════════════════════════════════════════════════════════════════════
# Enumerations
# ═══════════════════════════════════════════════════════════════════════════════


class Category(Enum):
    DRINK = "drink"
    FOOD = "food"
    OTHER = "other"


class PaymentMethod(Enum):
    CASH = "Cash"
    ONLINE_BDO = "Online-BDO"
    ONLINE_GCASH = "Online-GCASH"
    MIXED = "Mixed"

    @property
    def is_online(self) -> bool:
        return self in (PaymentMethod.ONLINE_BDO, PaymentMethod.ONLINE_GCASH)


class PaymentStatus(Enum):
    """
    Payment state of an order.

    PENDING / PARTIAL / COMPLETED are derived from tenders.
    FAILED / REFUNDED are assigned by the payment gateway side.
    """

    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# ═══════════════════════════════════════════════════════════════════════════════
# Line Item
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderLineItem:
    """
    One cart line.

    Note: line_total is derived, never stored separately, so it can't drift
    from unit_price * quantity.
    """

    name: str
    quantity: int
    unit_price: Money
    is_redeemed: bool = False
    is_pwd_senior_discounted: bool = False
    category: Category = Category.OTHER

    @property
    def line_total(self) -> Money:
        return money(self.unit_price * self.quantity)

    @property
    def payable_total(self) -> Money:
        """Contribution to the subtotal; redeemed lines are comped."""
        return ZERO if self.is_redeemed else self.line_total


# ═══════════════════════════════════════════════════════════════════════════════
# Pricing Inputs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DiscountInputs:
    """Which discounts apply to an order."""

    pwd_senior: bool = False
    employee: bool = False
    shareholder: bool = False
    redemption_amount: Money = ZERO


@dataclass(frozen=True, slots=True)
class DiscountRates:
    """Discount percentages as fractions (0.20 == 20%)."""

    pwd_senior: Decimal = Decimal("0.20")
    employee: Decimal = Decimal("0.10")
    shareholder: Decimal = Decimal("0.05")


@dataclass(frozen=True, slots=True)
class TaxRule:
    """
    Tax as a flat amount or as a rate on the pre-discount subtotal.

    Example:
        TaxRule.flat("38")       # fixed 38.00
        TaxRule.percent("0.12")  # 12% of subtotal
    """

    amount: Money = ZERO
    rate: Decimal | None = None

    @classmethod
    def flat(cls, amount: Decimal | int | str) -> TaxRule:
        return cls(amount=Decimal(amount))

    @classmethod
    def percent(cls, rate: Decimal | int | str) -> TaxRule:
        return cls(amount=ZERO, rate=Decimal(rate))

    def tax_for(self, subtotal: Money) -> Money:
        if self.rate is not None:
            return money(subtotal * self.rate)
        return money(self.amount)


@dataclass(frozen=True, slots=True)
class Pricing:
    """
    Everything compute_bills needs besides the items.

    Note: Stored on the order so amendments recompute with the rules in force
    when the order was opened.
    """

    discounts: DiscountInputs = field(default_factory=DiscountInputs)
    tax: TaxRule = field(default_factory=TaxRule)
    rates: DiscountRates = field(default_factory=DiscountRates)


@dataclass(frozen=True, slots=True)
class Tender:
    """What the customer hands over."""

    cash: Money = ZERO
    online: Money = ZERO
    online_method: PaymentMethod | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Bill Summary
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class BillSummary:
    """
    Financial record of an order.

    Owned by exactly one Order; produced by compute_bills and apply_payment,
    never edited field-by-field.
    """

    subtotal: Money
    tax: Money
    pwd_senior_discount: Money
    employee_discount: Money
    shareholder_discount: Money
    redemption_discount: Money
    redeemed_value: Money
    total_with_tax: Money
    net_sales: Money
    cash_amount: Money = ZERO
    online_amount: Money = ZERO
    online_method: PaymentMethod | None = None
    amount_paid: Money = ZERO
    change: Money = ZERO
    remaining_balance: Money = ZERO
    is_partial_payment: bool = False

    @property
    def total_discount(self) -> Money:
        return money(
            self.pwd_senior_discount
            + self.employee_discount
            + self.shareholder_discount
            + self.redemption_discount
        )

    @property
    def tender(self) -> Tender:
        return Tender(
            cash=self.cash_amount,
            online=self.online_amount,
            online_method=self.online_method,
        )


@dataclass(frozen=True, slots=True)
class Allocation:
    """Outcome of applying a tender to a bill."""

    bill: BillSummary
    payment_status: PaymentStatus
    payment_method: PaymentMethod


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
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
)
