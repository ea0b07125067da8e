"""
Wire schemas — pydantic request/response models.

Requests implement to_domain(); responses implement from_domain(). Field
names go over the wire in camelCase.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from kungfu import Result, Ok, Error
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tillbook.bills import (
    BillSummary,
    Category,
    DiscountInputs,
    OrderLineItem,
    PaymentMethod,
    PaymentStatus,
    Tender,
)
from tillbook.errors import BillingError
from tillbook.lifecycle import OrderStatus
from tillbook.orders import Customer, Order, SettlementEvent
from tillbook.reports import (
    ItemSales,
    MonthlySales,
    PaymentSummary,
    RangeSales,
    SalesReport,
    SalesSummary,
)


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


class LineItemIn(WireModel):
    name: str
    quantity: int
    unit_price: Decimal
    is_redeemed: bool = False
    is_pwd_senior_discounted: bool = False
    category: Category = Category.OTHER

    def to_domain(self) -> OrderLineItem:
        return OrderLineItem(
            name=self.name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            is_redeemed=self.is_redeemed,
            is_pwd_senior_discounted=self.is_pwd_senior_discounted,
            category=self.category,
        )


class DiscountsIn(WireModel):
    pwd_senior: bool = False
    employee: bool = False
    shareholder: bool = False
    redemption_amount: Decimal = Decimal("0")

    def to_domain(self) -> DiscountInputs:
        return DiscountInputs(
            pwd_senior=self.pwd_senior,
            employee=self.employee,
            shareholder=self.shareholder,
            redemption_amount=self.redemption_amount,
        )


class TenderIn(WireModel):
    cash: Decimal = Decimal("0")
    online: Decimal = Decimal("0")
    online_method: PaymentMethod | None = None

    def to_domain(self) -> Tender:
        return Tender(cash=self.cash, online=self.online, online_method=self.online_method)


class CustomerIn(WireModel):
    name: str = "Walk-in Customer"
    phone: str = "N/A"
    guests: int = 1

    def to_domain(self) -> Customer:
        return Customer(name=self.name, phone=self.phone, guests=self.guests)


@dataclass(frozen=True, slots=True)
class NewOrder:
    items: tuple[OrderLineItem, ...]
    discounts: DiscountInputs
    tender: Tender
    customer: Customer
    table_id: str | None
    notes: str


class CreateOrderIn(WireModel):
    items: list[LineItemIn]
    discounts: DiscountsIn = Field(default_factory=DiscountsIn)
    payment: TenderIn = Field(default_factory=TenderIn)
    customer: CustomerIn = Field(default_factory=CustomerIn)
    table_id: str | None = None
    notes: str = ""

    def to_domain(self) -> NewOrder:
        return NewOrder(
            items=tuple(i.to_domain() for i in self.items),
            discounts=self.discounts.to_domain(),
            tender=self.payment.to_domain(),
            customer=self.customer.to_domain(),
            table_id=self.table_id,
            notes=self.notes,
        )


class StatusIn(WireModel):
    order_status: OrderStatus

    def to_domain(self) -> OrderStatus:
        return self.order_status


class SettlementIn(WireModel):
    order_id: str
    amount_settled: Decimal
    method: PaymentMethod = PaymentMethod.ONLINE_GCASH

    def to_domain(self) -> SettlementEvent:
        return SettlementEvent(
            order_id=self.order_id,
            amount_settled=self.amount_settled,
            method=self.method,
        )


class SettlementsIn(WireModel):
    events: list[SettlementIn]

    def to_domain(self) -> list[SettlementEvent]:
        return [e.to_domain() for e in self.events]


# ═══════════════════════════════════════════════════════════════════════════════
# Responses
# ═══════════════════════════════════════════════════════════════════════════════


class LineItemOut(WireModel):
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    is_redeemed: bool
    is_pwd_senior_discounted: bool
    category: Category

    @classmethod
    def from_domain(cls, item: OrderLineItem) -> LineItemOut:
        return cls(
            name=item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
            is_redeemed=item.is_redeemed,
            is_pwd_senior_discounted=item.is_pwd_senior_discounted,
            category=item.category,
        )


class BillsOut(WireModel):
    subtotal: Decimal
    tax: Decimal
    pwd_senior_discount: Decimal
    employee_discount: Decimal
    shareholder_discount: Decimal
    redemption_discount: Decimal
    redeemed_value: Decimal
    total_with_tax: Decimal
    net_sales: Decimal
    cash_amount: Decimal
    online_amount: Decimal
    online_method: PaymentMethod | None
    amount_paid: Decimal
    change: Decimal
    remaining_balance: Decimal
    is_partial_payment: bool

    @classmethod
    def from_domain(cls, bill: BillSummary) -> BillsOut:
        return cls(
            subtotal=bill.subtotal,
            tax=bill.tax,
            pwd_senior_discount=bill.pwd_senior_discount,
            employee_discount=bill.employee_discount,
            shareholder_discount=bill.shareholder_discount,
            redemption_discount=bill.redemption_discount,
            redeemed_value=bill.redeemed_value,
            total_with_tax=bill.total_with_tax,
            net_sales=bill.net_sales,
            cash_amount=bill.cash_amount,
            online_amount=bill.online_amount,
            online_method=bill.online_method,
            amount_paid=bill.amount_paid,
            change=bill.change,
            remaining_balance=bill.remaining_balance,
            is_partial_payment=bill.is_partial_payment,
        )


class OrderOut(WireModel):
    order_number: str
    order_id: str
    items: list[LineItemOut]
    bills: BillsOut
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_status: OrderStatus
    owner_user_id: str
    customer: CustomerIn
    table_id: str | None
    notes: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, order: Order) -> OrderOut:
        return cls(
            order_number=order.order_number,
            order_id=order.order_id,
            items=[LineItemOut.from_domain(i) for i in order.items],
            bills=BillsOut.from_domain(order.bills),
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            order_status=order.order_status,
            owner_user_id=order.owner_user_id,
            customer=CustomerIn(
                name=order.customer.name,
                phone=order.customer.phone,
                guests=order.customer.guests,
            ),
            table_id=order.table_id,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class ErrorOut(WireModel):
    code: str
    message: str
    context: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, error: BillingError) -> ErrorOut:
        return cls(
            code=error.code,
            message=error.message,
            context={k: str(v) for k, v in error.context.items()},
        )


class SettlementOut(WireModel):
    order_id: str
    order: OrderOut | None = None
    error: ErrorOut | None = None

    @classmethod
    def from_domain(
        cls, event: SettlementEvent, result: Result[Order, BillingError]
    ) -> SettlementOut:
        match result:
            case Ok(order):
                return cls(order_id=event.order_id, order=OrderOut.from_domain(order))
            case Error(e):
                return cls(order_id=event.order_id, error=ErrorOut.from_domain(e))


class SalesStatsOut(WireModel):
    total_orders: int
    total_revenue: Decimal
    today_orders: int
    today_revenue: Decimal
    average_order_value: Decimal

    @classmethod
    def from_domain(cls, summary: SalesSummary) -> SalesStatsOut:
        return cls(
            total_orders=summary.total_orders,
            total_revenue=summary.total_revenue,
            today_orders=summary.today_orders,
            today_revenue=summary.today_revenue,
            average_order_value=summary.average_order_value,
        )


class MonthlySalesOut(WireModel):
    year: int
    month: int
    total_sales: Decimal
    order_count: int

    @classmethod
    def from_domain(cls, row: MonthlySales) -> MonthlySalesOut:
        return cls(
            year=row.year,
            month=row.month,
            total_sales=row.total_sales,
            order_count=row.order_count,
        )


class ItemSalesOut(WireModel):
    name: str
    total_quantity: int
    total_revenue: Decimal

    @classmethod
    def from_domain(cls, row: ItemSales) -> ItemSalesOut:
        return cls(name=row.name, total_quantity=row.total_quantity, total_revenue=row.total_revenue)


class PaymentSummaryOut(WireModel):
    cash_collected: Decimal
    online_collected: Decimal
    outstanding_balance: Decimal
    by_method: dict[str, int]
    by_status: dict[str, int]

    @classmethod
    def from_domain(cls, summary: PaymentSummary) -> PaymentSummaryOut:
        return cls(
            cash_collected=summary.cash_collected,
            online_collected=summary.online_collected,
            outstanding_balance=summary.outstanding_balance,
            by_method={m.value: n for m, n in summary.by_method.items()},
            by_status={s.value: n for s, n in summary.by_status.items()},
        )


class RangeSalesOut(WireModel):
    start: datetime
    end: datetime
    total_orders: int
    total_sales: Decimal
    orders: list[OrderOut]

    @classmethod
    def from_domain(cls, sales: RangeSales) -> RangeSalesOut:
        return cls(
            start=sales.start,
            end=sales.end,
            total_orders=sales.total_orders,
            total_sales=sales.total_sales,
            orders=[OrderOut.from_domain(o) for o in sales.orders],
        )


class SalesReportOut(WireModel):
    stats: SalesStatsOut
    monthly_sales: list[MonthlySalesOut]
    top_selling_items: list[ItemSalesOut]
    payments: PaymentSummaryOut
    generated_at: datetime

    @classmethod
    def from_domain(cls, report: SalesReport) -> SalesReportOut:
        return cls(
            stats=SalesStatsOut.from_domain(report.summary),
            monthly_sales=[MonthlySalesOut.from_domain(m) for m in report.monthly],
            top_selling_items=[ItemSalesOut.from_domain(i) for i in report.top_items],
            payments=PaymentSummaryOut.from_domain(report.payments),
            generated_at=report.generated_at,
        )


__all__ = (
    "WireModel",
    "LineItemIn",
    "DiscountsIn",
    "TenderIn",
    "CustomerIn",
    "NewOrder",
    "CreateOrderIn",
    "StatusIn",
    "SettlementIn",
    "SettlementsIn",
    "LineItemOut",
    "BillsOut",
    "OrderOut",
    "ErrorOut",
    "SettlementOut",
    "SalesStatsOut",
    "MonthlySalesOut",
    "ItemSalesOut",
    "PaymentSummaryOut",
    "RangeSalesOut",
    "SalesReportOut",
)
