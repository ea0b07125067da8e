"""
Wire — HTTP boundary over OrderService.

    from tillbook.wire import build_app, create_app

    app = build_app()                  # Settings.from_env(), tables on startup

    # or by hand

    session_factory, _ = await create_database(settings.database_url)
    service = OrderService(
        SQLAlchemyOrderStore(session_factory),
        SQLAlchemySequence(session_factory),
        settings,
    )
    app = create_app(service)

Routes:
    POST /orders                       create (201)
    GET  /orders                       list, scoped to the caller
    GET  /orders/{order_id}            read
    POST /orders/{order_id}/items      add item
    POST /orders/{order_id}/payments   record tender
    PUT  /orders/{order_id}/status     change order status
    POST /payments/settlements         gateway settlements (admin)
    GET  /sales/stats                  sales report
    GET  /sales/range?start&end        completed sales in a window
"""

from tillbook.wire._schemas import (
    LineItemIn,
    DiscountsIn,
    TenderIn,
    CustomerIn,
    CreateOrderIn,
    StatusIn,
    SettlementIn,
    SettlementsIn,
    OrderOut,
    BillsOut,
    ErrorOut,
    SettlementOut,
    RangeSalesOut,
    SalesReportOut,
)
from tillbook.wire._app import create_app, actor_from_headers
from tillbook.wire._main import build_app

__all__ = (
    "build_app",
    "create_app",
    "actor_from_headers",
    "LineItemIn",
    "DiscountsIn",
    "TenderIn",
    "CustomerIn",
    "CreateOrderIn",
    "StatusIn",
    "SettlementIn",
    "SettlementsIn",
    "OrderOut",
    "BillsOut",
    "ErrorOut",
    "SettlementOut",
    "RangeSalesOut",
    "SalesReportOut",
)
