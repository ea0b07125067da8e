"""
Sales reports — pure folds over orders.

Revenue counts completed orders only, at total_with_tax.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo

from tillbook._types import Money, ZERO, floor_zero, money
from tillbook.bills import PaymentMethod, PaymentStatus
from tillbook.identity import business_day
from tillbook.lifecycle import OrderStatus
from tillbook.orders._types import Order


def _completed(orders: Iterable[Order]) -> list[Order]:
    return [o for o in orders if o.order_status is OrderStatus.COMPLETED]


def _revenue(orders: Iterable[Order]) -> Money:
    return money(sum((o.bills.total_with_tax for o in orders), ZERO))


def _utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════════
# Summary
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SalesSummary:
    total_orders: int
    total_revenue: Money
    today_orders: int
    today_revenue: Money
    average_order_value: Money


def sales_summary(
    orders: Iterable[Order], today: date, tz: tzinfo = timezone.utc
) -> SalesSummary:
    done = _completed(orders)
    todays = [o for o in done if business_day(o.created_at, tz) == today]
    revenue = _revenue(done)
    return SalesSummary(
        total_orders=len(done),
        total_revenue=revenue,
        today_orders=len(todays),
        today_revenue=_revenue(todays),
        average_order_value=money(revenue / len(done)) if done else ZERO,
    )


@dataclass(frozen=True, slots=True)
class RangeSales:
    start: datetime
    end: datetime
    total_orders: int
    total_sales: Money
    orders: tuple[Order, ...]


def sales_in_range(orders: Iterable[Order], start: datetime, end: datetime) -> RangeSales:
    """Completed orders created in [start, end]. Naive bounds are taken as UTC."""
    start, end = _utc(start), _utc(end)
    if end < start:
        raise ValueError("end must not precede start")
    found = tuple(o for o in _completed(orders) if start <= o.created_at <= end)
    return RangeSales(
        start=start,
        end=end,
        total_orders=len(found),
        total_sales=_revenue(found),
        orders=found,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Breakdowns
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class MonthlySales:
    year: int
    month: int
    total_sales: Money
    order_count: int


def monthly_sales(
    orders: Iterable[Order], tz: tzinfo = timezone.utc
) -> list[MonthlySales]:
    """Completed sales per calendar month, oldest first."""
    buckets: dict[tuple[int, int], list[Order]] = defaultdict(list)
    for order in _completed(orders):
        day = business_day(order.created_at, tz)
        buckets[(day.year, day.month)].append(order)
    return [
        MonthlySales(year=y, month=m, total_sales=_revenue(group), order_count=len(group))
        for (y, m), group in sorted(buckets.items())
    ]


@dataclass(frozen=True, slots=True)
class ItemSales:
    name: str
    total_quantity: int
    total_revenue: Money


def top_selling_items(orders: Iterable[Order], limit: int = 10) -> list[ItemSales]:
    """
    Best sellers by quantity across completed orders.

    Note: Redeemed lines count toward quantity but not revenue.
    """
    quantity: dict[str, int] = defaultdict(int)
    revenue: dict[str, Money] = defaultdict(lambda: ZERO)
    for order in _completed(orders):
        for item in order.items:
            quantity[item.name] += item.quantity
            revenue[item.name] += item.payable_total
    ranked = sorted(quantity, key=lambda name: (-quantity[name], -revenue[name], name))
    return [
        ItemSales(name=n, total_quantity=quantity[n], total_revenue=money(revenue[n]))
        for n in ranked[:limit]
    ]


@dataclass(frozen=True, slots=True)
class PaymentSummary:
    """Money collected and still owed, split by channel."""

    cash_collected: Money
    online_collected: Money
    outstanding_balance: Money
    by_method: dict[PaymentMethod, int]
    by_status: dict[PaymentStatus, int]


def payment_summary(
    orders: Iterable[Order], today: date | None = None, tz: tzinfo = timezone.utc
) -> PaymentSummary:
    """
    Tender totals over non-cancelled orders, optionally for a single day.

    Note: Collected cash is capped at what the bill needed; change handed back
    is not revenue.
    """
    cash = online = outstanding = ZERO
    by_method: dict[PaymentMethod, int] = defaultdict(int)
    by_status: dict[PaymentStatus, int] = defaultdict(int)
    for order in orders:
        if order.order_status is OrderStatus.CANCELLED:
            continue
        if today is not None and business_day(order.created_at, tz) != today:
            continue
        bill = order.bills
        # change comes out of cash first, then online
        cash += floor_zero(bill.cash_amount - bill.change)
        online += bill.online_amount - floor_zero(bill.change - bill.cash_amount)
        outstanding += bill.remaining_balance
        by_method[order.payment_method] += 1
        by_status[order.payment_status] += 1
    return PaymentSummary(
        cash_collected=money(cash),
        online_collected=money(online),
        outstanding_balance=money(outstanding),
        by_method=dict(by_method),
        by_status=dict(by_status),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Report
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SalesReport:
    summary: SalesSummary
    monthly: list[MonthlySales]
    top_items: list[ItemSales]
    payments: PaymentSummary
    generated_at: datetime


def build_sales_report(
    orders: Iterable[Order],
    now: datetime,
    tz: tzinfo = timezone.utc,
    top: int = 10,
) -> SalesReport:
    """All figures at once, with today taken from now in tz."""
    rows = list(orders)
    today = business_day(now, tz)
    return SalesReport(
        summary=sales_summary(rows, today, tz),
        monthly=monthly_sales(rows, tz),
        top_items=top_selling_items(rows, top),
        payments=payment_summary(rows, today, tz),
        generated_at=now,
    )


__all__ = (
    "SalesReport",
    "build_sales_report",
    "SalesSummary",
    "RangeSales",
    "MonthlySales",
    "ItemSales",
    "PaymentSummary",
    "sales_summary",
    "sales_in_range",
    "monthly_sales",
    "top_selling_items",
    "payment_summary",
)
