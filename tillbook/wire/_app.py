"""
HTTP boundary — FastAPI app over OrderService.

Routes decode into domain calls and encode the results; nothing else. The
caller's identity arrives in X-User-Id / X-User-Role from the upstream auth
service. Any BillingError becomes {"code", "message", "context"} with the
status of its kind.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Annotated

import fastapi
from fastapi import Depends, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from kungfu import Result, Ok, Error

from tillbook.bills import PaymentStatus
from tillbook.errors import AccessDeniedError, BillingError, ValidationError
from tillbook.lifecycle import OrderStatus
from tillbook.orders import Actor, OrderQuery, OrderService, Role
from tillbook.wire._schemas import (
    CreateOrderIn,
    ErrorOut,
    LineItemIn,
    OrderOut,
    RangeSalesOut,
    SalesReportOut,
    SettlementOut,
    SettlementsIn,
    StatusIn,
    TenderIn,
)

logger = logging.getLogger(__name__)


def unwrap[T](result: Result[T, BillingError]) -> T:
    """Ok value, or raise the error for the exception handler."""
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise e


def actor_from_headers(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str, Header()] = Role.CASHIER.value,
) -> Actor:
    if not x_user_id:
        raise AccessDeniedError("missing X-User-Id header")
    try:
        role = Role(x_user_role.strip().lower())
    except ValueError:
        raise AccessDeniedError("unknown role", role=x_user_role) from None
    return Actor(user_id=x_user_id, role=role)


CurrentActor = Annotated[Actor, Depends(actor_from_headers)]


type Lifespan = Callable[[fastapi.FastAPI], AbstractAsyncContextManager[None]]


def create_app(service: OrderService, lifespan: Lifespan | None = None) -> fastapi.FastAPI:
    """
    Build the HTTP app. lifespan, when given, wraps startup and shutdown.

    Example:
        app = create_app(OrderService(store, sequence, settings))
        # uvicorn module:app
    """
    app = fastapi.FastAPI(title="tillbook", lifespan=lifespan)

    @app.exception_handler(BillingError)
    async def _billing_error(request: Request, exc: BillingError) -> JSONResponse:
        if exc.kind.http_status >= 500:
            logger.error(
                "%s %s failed: %s %s",
                request.method,
                request.url.path,
                exc.code,
                exc.message,
            )
        return JSONResponse(
            status_code=exc.kind.http_status,
            content=ErrorOut.from_domain(exc).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def _request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError(
            "malformed request",
            errors="; ".join(
                f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()
            ),
        )
        return JSONResponse(status_code=400, content=ErrorOut.from_domain(error).model_dump())

    # ── Orders ────────────────────────────────────────────────────────────────

    @app.post("/orders", status_code=201)
    async def create_order(body: CreateOrderIn, actor: CurrentActor) -> OrderOut:
        new = body.to_domain()
        order = unwrap(
            await service.create(
                actor,
                new.items,
                discounts=new.discounts,
                tender=new.tender,
                customer=new.customer,
                table_id=new.table_id,
                notes=new.notes,
            )
        )
        return OrderOut.from_domain(order)

    @app.get("/orders")
    async def list_orders(
        actor: CurrentActor,
        status: Annotated[list[OrderStatus] | None, Query()] = None,
        payment_status: Annotated[
            list[PaymentStatus] | None, Query(alias="paymentStatus")
        ] = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: Annotated[int | None, Query(ge=1, le=500)] = None,
    ) -> list[OrderOut]:
        query = OrderQuery().with_created_range(start, end).with_limit(limit)
        if status:
            query = query.with_order_status(*status)
        if payment_status:
            query = query.with_payment_status(*payment_status)
        orders = unwrap(await service.list_orders(actor, query))
        return [OrderOut.from_domain(o) for o in orders]

    @app.get("/orders/{order_id}")
    async def get_order(order_id: str, actor: CurrentActor) -> OrderOut:
        return OrderOut.from_domain(unwrap(await service.get_order(actor, order_id)))

    @app.post("/orders/{order_id}/items")
    async def add_item(order_id: str, body: LineItemIn, actor: CurrentActor) -> OrderOut:
        order = unwrap(await service.add_item(actor, order_id, body.to_domain()))
        return OrderOut.from_domain(order)

    @app.post("/orders/{order_id}/payments")
    async def record_payment(order_id: str, body: TenderIn, actor: CurrentActor) -> OrderOut:
        order = unwrap(await service.record_payment(actor, order_id, body.to_domain()))
        return OrderOut.from_domain(order)

    @app.put("/orders/{order_id}/status")
    async def set_status(order_id: str, body: StatusIn, actor: CurrentActor) -> OrderOut:
        order = unwrap(await service.set_order_status(actor, order_id, body.to_domain()))
        return OrderOut.from_domain(order)

    # ── Payments ──────────────────────────────────────────────────────────────

    @app.post("/payments/settlements")
    async def settle(body: SettlementsIn, actor: CurrentActor) -> list[SettlementOut]:
        if not actor.is_admin:
            raise AccessDeniedError("settlements require the admin role", user_id=actor.user_id)
        events = body.to_domain()
        results = unwrap(await service.reconcile(events))
        return [SettlementOut.from_domain(ev, r) for ev, r in zip(events, results)]

    # ── Sales ─────────────────────────────────────────────────────────────────

    @app.get("/sales/stats")
    async def sales_stats(actor: CurrentActor) -> SalesReportOut:
        report = unwrap(await service.sales_report(actor))
        return SalesReportOut.from_domain(report)

    @app.get("/sales/range")
    async def sales_range(actor: CurrentActor, start: datetime, end: datetime) -> RangeSalesOut:
        sales = unwrap(await service.sales_in_range(actor, start, end))
        return RangeSalesOut.from_domain(sales)

    return app


__all__ = ("create_app", "actor_from_headers", "unwrap")
