"""
Reports — order queries and sales figures.

    from tillbook import reports as R

    q = R.OrderQuery().with_order_status(OrderStatus.COMPLETED).scoped_for(actor)
    orders = q.apply(all_orders)

    summary = R.sales_summary(orders, today=date.today())
    top = R.top_selling_items(orders, limit=10)

Everything here is a pure read-side fold; nothing writes.
"""

from tillbook.orders._query import OrderQuery
from tillbook.reports._sales import (
    SalesReport,
    build_sales_report,
    SalesSummary,
    RangeSales,
    MonthlySales,
    ItemSales,
    PaymentSummary,
    sales_summary,
    sales_in_range,
    monthly_sales,
    top_selling_items,
    payment_summary,
)

__all__ = (
    "OrderQuery",
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
