import asyncio
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

from kungfu import Ok

from tillbook.bills import OrderLineItem, PaymentMethod, PaymentStatus, Tender
from tillbook.config import Settings
from tillbook.errors import (
    AccessDeniedError,
    InvalidTransitionError,
    OrderCreationError,
    OrderNotFoundError,
    ValidationError,
    WriteConflictError,
)
from tillbook.lifecycle import OrderStatus
from tillbook.orders import OrderQuery, SettlementEvent
from tillbook.storage import MemoryOrderStore

from tests._helpers import (
    ADMIN,
    CASHIER,
    NOW,
    OTHER_CASHIER,
    TAX_38,
    err,
    latte_and_muffin,
    make_service,
    ok,
    run,
)


class FixedSequence:
    """Hands out a scripted list of counts, repeating the last one."""

    def __init__(self, *counts: int) -> None:
        self.counts = list(counts)
        self.calls = 0

    async def next_count(self, day: date):
        index = min(self.calls, len(self.counts) - 1)
        self.calls += 1
        return Ok(self.counts[index])


class ConflictingStore(MemoryOrderStore):
    """Lets another writer sneak in before the first `conflicts` replaces."""

    def __init__(self, conflicts: int) -> None:
        super().__init__()
        self.conflicts = conflicts
        self.replaces = 0

    async def replace(self, order):
        self.replaces += 1
        if self.replaces <= self.conflicts:
            match await self.get(order.order_id):
                case Ok(current) if current is not None:
                    await super().replace(replace(current, notes=f"bump {self.replaces}"))
        return await super().replace(order)


# ═══════════════════════════════════════════════════════════════════════════════
# Create
# ═══════════════════════════════════════════════════════════════════════════════


def test_create_stores_priced_order():
    async def main():
        service = make_service()
        order = ok(await service.create(CASHIER, latte_and_muffin(), tender=Tender(cash=Decimal("500"))))
        stored = ok(await service.get_order(CASHIER, order.order_id))
        return order, stored

    order, stored = run(main())

    assert order.order_number == "ORD-240305-0001"
    assert order.owner_user_id == CASHIER.user_id
    assert order.bills.change == Decimal("82.00")
    assert order.payment_status is PaymentStatus.COMPLETED
    assert stored == order


def test_create_rejects_invalid_cart():
    async def main():
        service = make_service()
        empty = await service.create(CASHIER, [])
        bad = await service.create(CASHIER, [OrderLineItem("Latte", 0, Decimal("150"))])
        return empty, bad

    empty, bad = run(main())

    assert isinstance(err(empty), ValidationError)
    assert err(bad).code == "INVALID_LINE_ITEM"


def test_concurrent_creates_never_share_an_order_number():
    async def main():
        store = MemoryOrderStore()
        service = make_service(store=store)
        results = await asyncio.gather(
            *(service.create(CASHIER, latte_and_muffin()) for _ in range(20))
        )
        return store, [ok(r) for r in results]

    store, orders = run(main())

    numbers = {o.order_number for o in orders}
    assert len(numbers) == 20
    assert len({o.order_id for o in orders}) == 20
    assert len(store) == 20
    assert "ORD-240305-0020" in numbers


def test_identity_collision_is_retried():
    async def main():
        sequence = FixedSequence(0, 0, 1)
        service = make_service(sequence=sequence)
        first = ok(await service.create(CASHIER, latte_and_muffin()))
        second = ok(await service.create(CASHIER, latte_and_muffin()))
        return sequence, first, second

    sequence, first, second = run(main())

    assert first.order_number == "ORD-240305-0001"
    assert second.order_number == "ORD-240305-0002"
    assert sequence.calls == 3


def test_identity_collisions_give_up_after_bounded_attempts():
    async def main():
        sequence = FixedSequence(0)
        service = make_service(
            sequence=sequence, settings=Settings().with_tax(TAX_38).with_retry(identity_attempts=4)
        )
        ok(await service.create(CASHIER, latte_and_muffin()))
        result = await service.create(CASHIER, latte_and_muffin())
        return sequence, result

    sequence, result = run(main())

    e = err(result)
    assert isinstance(e, OrderCreationError)
    assert e.context["attempts"] == 4
    assert e.kind.http_status == 500
    assert sequence.calls == 1 + 4


# ═══════════════════════════════════════════════════════════════════════════════
# Mutations
# ═══════════════════════════════════════════════════════════════════════════════


def test_payment_then_completion():
    async def main():
        service = make_service()
        order = ok(await service.create(CASHIER, latte_and_muffin(), tender=Tender(cash=Decimal("200"))))
        premature = await service.set_order_status(CASHIER, order.order_id, OrderStatus.COMPLETED)
        paid = ok(await service.record_payment(CASHIER, order.order_id, Tender(cash=Decimal("418"))))
        done = ok(await service.set_order_status(CASHIER, order.order_id, OrderStatus.COMPLETED))
        late_item = await service.add_item(CASHIER, order.order_id, OrderLineItem("Tea", 1, Decimal("20")))
        return order, premature, paid, done, late_item

    order, premature, paid, done, late_item = run(main())

    assert order.payment_status is PaymentStatus.PARTIAL
    assert isinstance(err(premature), InvalidTransitionError)
    assert paid.payment_status is PaymentStatus.COMPLETED
    assert paid.version == 2
    assert done.order_status is OrderStatus.COMPLETED
    assert done.version == 3
    assert isinstance(err(late_item), ValidationError)


def test_repeated_payment_leaves_bill_unchanged():
    async def main():
        service = make_service()
        order = ok(await service.create(CASHIER, latte_and_muffin(), tender=Tender(cash=Decimal("418"))))
        again = ok(await service.record_payment(CASHIER, order.order_id, Tender(cash=Decimal("418"))))
        return order, again

    order, again = run(main())

    assert again.version == order.version + 1
    assert again.bills == order.bills


def test_write_conflict_is_retried():
    async def main():
        store = ConflictingStore(conflicts=2)
        service = make_service(store=store)
        order = ok(await service.create(CASHIER, latte_and_muffin()))
        paid = ok(await service.record_payment(CASHIER, order.order_id, Tender(cash=Decimal("418"))))
        return store, paid

    store, paid = run(main())

    assert paid.payment_status is PaymentStatus.COMPLETED
    assert paid.notes == "bump 2"
    assert store.replaces == 3


def test_write_conflict_surfaces_after_bounded_attempts():
    async def main():
        store = ConflictingStore(conflicts=100)
        service = make_service(store=store)
        order = ok(await service.create(CASHIER, latte_and_muffin()))
        result = await service.record_payment(CASHIER, order.order_id, Tender(cash=Decimal("418")))
        return store, result

    store, result = run(main())

    e = err(result)
    assert isinstance(e, WriteConflictError)
    assert e.kind.retryable
    assert store.replaces == 3


def test_concurrent_payments_on_one_order_both_land():
    async def main():
        service = make_service()
        order = ok(await service.create(CASHIER, latte_and_muffin()))
        a, b = await asyncio.gather(
            service.record_payment(CASHIER, order.order_id, Tender(cash=Decimal("100"))),
            service.add_item(CASHIER, order.order_id, OrderLineItem("Tea", 1, Decimal("20"))),
        )
        return ok(a), ok(b), ok(await service.get_order(CASHIER, order.order_id))

    a, b, final = run(main())

    assert final.version == 3
    assert len(final.items) == 3
    assert final.bills.cash_amount == Decimal("100.00")
    assert final.bills.remaining_balance == Decimal("338.00")


# ═══════════════════════════════════════════════════════════════════════════════
# Access
# ═══════════════════════════════════════════════════════════════════════════════


def test_cashiers_only_touch_their_own_orders():
    async def main():
        service = make_service()
        mine = ok(await service.create(CASHIER, latte_and_muffin()))
        theirs = ok(await service.create(OTHER_CASHIER, latte_and_muffin()))
        return (
            mine,
            theirs,
            await service.get_order(CASHIER, theirs.order_id),
            await service.record_payment(CASHIER, theirs.order_id, Tender(cash=Decimal("1"))),
            await service.get_order(ADMIN, theirs.order_id),
            ok(await service.list_orders(CASHIER)),
            ok(await service.list_orders(ADMIN)),
        )

    mine, theirs, peek, pay, admin_view, cashier_list, admin_list = run(main())

    assert isinstance(err(peek), AccessDeniedError)
    assert isinstance(err(pay), AccessDeniedError)
    assert ok(admin_view) == theirs
    assert [o.order_id for o in cashier_list] == [mine.order_id]
    assert {o.order_id for o in admin_list} == {mine.order_id, theirs.order_id}


def test_missing_order_is_not_found():
    e = err(run(make_service().get_order(ADMIN, "ord_missing")))

    assert isinstance(e, OrderNotFoundError)
    assert e.kind.http_status == 404


def test_cashier_cannot_widen_list_scope():
    async def main():
        service = make_service()
        ok(await service.create(OTHER_CASHIER, latte_and_muffin()))
        return ok(await service.list_orders(CASHIER, OrderQuery().with_owner(OTHER_CASHIER.user_id)))

    assert run(main()) == []


# ═══════════════════════════════════════════════════════════════════════════════
# Settlements
# ═══════════════════════════════════════════════════════════════════════════════


def test_settlement_is_idempotent():
    async def main():
        service = make_service()
        order = ok(await service.create(CASHIER, latte_and_muffin()))
        event = SettlementEvent(order.order_id, Decimal("418"), PaymentMethod.ONLINE_BDO)
        first = ok(await service.settle(event))
        second = ok(await service.settle(event))
        return first, second

    first, second = run(main())

    assert first.payment_status is PaymentStatus.COMPLETED
    assert first.payment_method is PaymentMethod.ONLINE_BDO
    assert first.bills.online_amount == Decimal("418.00")
    assert second == first


def test_settlement_keeps_cash_tender():
    async def main():
        service = make_service()
        order = ok(await service.create(CASHIER, latte_and_muffin(), tender=Tender(cash=Decimal("18"))))
        return ok(await service.settle(SettlementEvent(order.order_id, Decimal("400"))))

    settled = run(main())

    assert settled.payment_method is PaymentMethod.MIXED
    assert settled.bills.amount_paid == Decimal("418.00")


def test_reconcile_settles_each_event_independently():
    async def main():
        service = make_service()
        a = ok(await service.create(CASHIER, latte_and_muffin()))
        b = ok(await service.create(OTHER_CASHIER, latte_and_muffin()))
        results = ok(
            await service.reconcile(
                [
                    SettlementEvent(a.order_id, Decimal("418")),
                    SettlementEvent("ord_missing", Decimal("10")),
                    SettlementEvent(b.order_id, Decimal("100")),
                ]
            )
        )
        return results

    first, missing, third = run(main())

    assert ok(first).payment_status is PaymentStatus.COMPLETED
    assert isinstance(err(missing), OrderNotFoundError)
    assert ok(third).payment_status is PaymentStatus.PARTIAL


def test_reconcile_with_no_events():
    assert ok(run(make_service().reconcile([]))) == []


# ═══════════════════════════════════════════════════════════════════════════════
# Reports
# ═══════════════════════════════════════════════════════════════════════════════


def test_sales_report_counts_completed_orders():
    async def main():
        service = make_service()
        a = ok(await service.create(CASHIER, latte_and_muffin(), tender=Tender(cash=Decimal("500"))))
        ok(await service.set_order_status(CASHIER, a.order_id, OrderStatus.COMPLETED))
        ok(await service.create(CASHIER, latte_and_muffin(), tender=Tender(cash=Decimal("200"))))
        return ok(await service.sales_report(ADMIN))

    report = run(main())

    assert report.summary.total_orders == 1
    assert report.summary.total_revenue == Decimal("418.00")
    assert report.summary.today_orders == 1
    assert report.payments.cash_collected == Decimal("618.00")
    assert report.payments.outstanding_balance == Decimal("218.00")
    assert report.top_items[0].name == "Latte"


def completed_sale(service, actor):
    async def main():
        order = ok(await service.create(actor, latte_and_muffin(), tender=Tender(cash=Decimal("418"))))
        return ok(await service.set_order_status(actor, order.order_id, OrderStatus.COMPLETED))

    return main()


def test_sales_in_range_includes_both_bounds():
    async def main():
        service = make_service()
        done = await completed_sale(service, CASHIER)
        ok(await service.create(CASHIER, latte_and_muffin()))
        exact = ok(await service.sales_in_range(ADMIN, NOW, NOW))
        later = ok(await service.sales_in_range(ADMIN, NOW + timedelta(seconds=1), NOW + timedelta(hours=1)))
        return done, exact, later

    done, exact, later = run(main())

    assert [o.order_id for o in exact.orders] == [done.order_id]
    assert exact.total_sales == Decimal("418.00")
    assert later.total_orders == 0
    assert later.total_sales == Decimal("0.00")


def test_sales_in_range_takes_naive_bounds_as_utc():
    async def main():
        service = make_service()
        await completed_sale(service, CASHIER)
        naive = NOW.replace(tzinfo=None)
        return ok(await service.sales_in_range(ADMIN, naive - timedelta(minutes=5), naive))

    sales = run(main())

    assert sales.total_orders == 1
    assert sales.start.tzinfo is not None


def test_sales_in_range_rejects_end_before_start():
    e = err(run(make_service().sales_in_range(ADMIN, NOW, NOW - timedelta(days=1))))

    assert isinstance(e, ValidationError)


def test_sales_in_range_is_scoped_to_the_cashier():
    async def main():
        service = make_service()
        await completed_sale(service, CASHIER)
        await completed_sale(service, OTHER_CASHIER)
        mine = ok(await service.sales_in_range(CASHIER, NOW, NOW))
        everyone = ok(await service.sales_in_range(ADMIN, NOW, NOW))
        return mine, everyone

    mine, everyone = run(main())

    assert [o.owner_user_id for o in mine.orders] == [CASHIER.user_id]
    assert everyone.total_orders == 2
    assert everyone.total_sales == Decimal("836.00")
